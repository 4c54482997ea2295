# =============================================================================
# Job Store — Job State, Attempts and Bounded Retention
# =============================================================================
#
# Celery delivers and retries tasks, but its result backend only knows
# PENDING/STARTED/SUCCESS/FAILURE. Clients polling an upload need more:
# waiting/active/delayed/completed/failed, progress, attempts made, the
# return value and the failure reason. That record lives here, keyed by the
# same id as the Celery task.
#
# RETENTION:
# Terminal jobs stay queryable only for a bounded window: the newest
# `keep_completed_jobs` completed (10) and `keep_failed_jobs` failed (5).
# Older terminal records are deleted when a newer one lands. Jobs that are
# still waiting/active/delayed are never evicted.
#
# BACKENDS:
#   JobStore (Protocol)
#   ├── RedisJobStore     — JSON blob per job + one ZSET per terminal state
#   │                       (score = finished_at) for retention
#   └── InMemoryJobStore  — dict + lock; for tests and single-process dev
#
# Uses Redis db 2 (db 0/1 reserved for Celery).
# =============================================================================

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from pdf_chat.config import settings
from pdf_chat.models.jobs import JobPayload

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


class JobState(str, Enum):
    """Lifecycle of an ingestion job."""

    WAITING = "waiting"      # Enqueued, not yet picked up
    ACTIVE = "active"        # A worker is processing it
    DELAYED = "delayed"      # Failed an attempt, waiting for its retry backoff
    COMPLETED = "completed"  # Terminal: ingested successfully
    FAILED = "failed"        # Terminal: all attempts exhausted


TERMINAL_STATES = frozenset({JobState.COMPLETED, JobState.FAILED})


@dataclass
class JobOptions:
    """Retry policy attached to a job at enqueue time."""

    max_attempts: int = field(default_factory=lambda: settings.job_attempts)
    backoff_type: str = "exponential"
    backoff_delay_ms: int = field(default_factory=lambda: settings.job_backoff_delay_ms)

    def backoff_seconds(self, attempt: int) -> float:
        """
        Delay before the attempt that follows `attempt` (1-based).

        Exponential: delay, 2*delay, 4*delay, ...
        Fixed: delay every time.
        """
        if self.backoff_type == "fixed":
            return self.backoff_delay_ms / 1000
        return self.backoff_delay_ms * (2 ** (attempt - 1)) / 1000


@dataclass
class Job:
    """A unit of ingestion work and everything known about its progress."""

    payload: JobPayload
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "file-ready"
    state: JobState = JobState.WAITING
    attempt_count: int = 0
    last_error: str | None = None
    progress: int = 0
    result: dict | None = None
    options: JobOptions = field(default_factory=JobOptions)
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def failed_reason(self) -> str | None:
        """The last error, exposed only once the job has given up."""
        return self.last_error if self.state == JobState.FAILED else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "payload": self.payload.to_wire(),
            "state": self.state.value,
            "attempt_count": self.attempt_count,
            "last_error": self.last_error,
            "progress": self.progress,
            "result": self.result,
            "options": {
                "max_attempts": self.options.max_attempts,
                "backoff_type": self.options.backoff_type,
                "backoff_delay_ms": self.options.backoff_delay_ms,
            },
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "finished_at": self.finished_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Job:
        return cls(
            id=data["id"],
            name=data.get("name", "file-ready"),
            payload=JobPayload.model_validate(data["payload"]),
            state=JobState(data["state"]),
            attempt_count=data.get("attempt_count", 0),
            last_error=data.get("last_error"),
            progress=data.get("progress", 0),
            result=data.get("result"),
            options=JobOptions(**data.get("options", {})),
            created_at=data.get("created_at", 0.0),
            updated_at=data.get("updated_at", 0.0),
            finished_at=data.get("finished_at"),
        )


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class JobStore(Protocol):
    """Persistence for Job records."""

    def save(self, job: Job) -> None:
        """Insert or replace a job. Saving a terminal job applies retention."""
        ...

    def get(self, job_id: str) -> Job | None:
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Redis
# ---------------------------------------------------------------------------


class RedisJobStore:
    """
    Redis-backed job store.

    Keys:
        {prefix}:job:{id}       — JSON-encoded Job
        {prefix}:completed      — ZSET of completed job ids by finished_at
        {prefix}:failed         — ZSET of failed job ids by finished_at
    """

    def __init__(
        self,
        client=None,
        prefix: str | None = None,
        keep_completed: int | None = None,
        keep_failed: int | None = None,
    ) -> None:
        if client is None:
            import redis

            client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self._redis = client
        self._prefix = prefix or settings.job_key_prefix
        self._keep = {
            JobState.COMPLETED: (
                settings.keep_completed_jobs if keep_completed is None else keep_completed
            ),
            JobState.FAILED: (
                settings.keep_failed_jobs if keep_failed is None else keep_failed
            ),
        }

    def _job_key(self, job_id: str) -> str:
        return f"{self._prefix}:job:{job_id}"

    def _index_key(self, state: JobState) -> str:
        return f"{self._prefix}:{state.value}"

    def save(self, job: Job) -> None:
        job.updated_at = time.time()
        self._redis.set(self._job_key(job.id), json.dumps(job.to_dict()))
        if job.is_terminal:
            self._retain(job)

    def get(self, job_id: str) -> Job | None:
        raw = self._redis.get(self._job_key(job_id))
        if raw is None:
            return None
        return Job.from_dict(json.loads(raw))

    def _retain(self, job: Job) -> None:
        index = self._index_key(job.state)
        keep = self._keep[job.state]

        self._redis.zadd(index, {job.id: job.finished_at or job.updated_at})

        # Everything except the newest `keep` members
        stale = self._redis.zrange(index, 0, -(keep + 1))
        if not stale:
            return

        pipe = self._redis.pipeline()
        pipe.zrem(index, *stale)
        pipe.delete(*[self._job_key(job_id) for job_id in stale])
        pipe.execute()
        logger.debug("Evicted %d %s jobs past retention", len(stale), job.state.value)


# ---------------------------------------------------------------------------
# Implementation 2: In-memory
# ---------------------------------------------------------------------------


class InMemoryJobStore:
    """Process-local job store with the same retention rules as Redis."""

    def __init__(
        self,
        keep_completed: int | None = None,
        keep_failed: int | None = None,
    ) -> None:
        self._jobs: dict[str, dict] = {}
        self._finished: dict[JobState, list[str]] = {
            JobState.COMPLETED: [],
            JobState.FAILED: [],
        }
        self._keep = {
            JobState.COMPLETED: (
                settings.keep_completed_jobs if keep_completed is None else keep_completed
            ),
            JobState.FAILED: (
                settings.keep_failed_jobs if keep_failed is None else keep_failed
            ),
        }
        self._lock = threading.Lock()

    def save(self, job: Job) -> None:
        job.updated_at = time.time()
        with self._lock:
            # Stored as dicts so callers never share a mutable Job instance
            self._jobs[job.id] = job.to_dict()
            if job.is_terminal:
                finished = self._finished[job.state]
                if job.id not in finished:
                    finished.append(job.id)
                while len(finished) > self._keep[job.state]:
                    self._jobs.pop(finished.pop(0), None)

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            data = self._jobs.get(job_id)
        return Job.from_dict(data) if data is not None else None

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()
            for finished in self._finished.values():
                finished.clear()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

_store: RedisJobStore | InMemoryJobStore | None = None


def get_job_store() -> RedisJobStore | InMemoryJobStore:
    """
    Return the configured job store (lazy singleton).

    Reads `job_store_type` from settings:
    - "redis" → RedisJobStore (default)
    - "memory" → InMemoryJobStore (API and worker must share a process)
    """
    global _store
    if _store is None:
        if settings.job_store_type == "memory":
            _store = InMemoryJobStore()
        else:
            _store = RedisJobStore()
    return _store
