# =============================================================================
# Job Events — Typed Notifications on Job-State Transitions
# =============================================================================
#
# The ingestion task publishes one JobEvent per transition:
#   active     — an attempt started
#   progress   — the worker reached a step boundary (20/40/70/90/100)
#   retrying   — an attempt failed and another is scheduled
#   completed  — terminal success (carries the ProcessResult dict)
#   failed     — terminal failure after the last attempt (carries the error)
#
# Listeners are plain callables. Any number can subscribe; each gets every
# event in publish order. A listener that raises is logged and skipped, so
# notification problems never change the outcome of a job.
# =============================================================================

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class JobEventType(str, Enum):
    ACTIVE = "active"
    PROGRESS = "progress"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class JobEvent:
    type: JobEventType
    job_id: str
    attempt: int = 0
    progress: int | None = None
    result: dict | None = None
    error: str | None = None


JobEventListener = Callable[[JobEvent], None]


class JobEventBus:
    """Synchronous fan-out of job events to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: list[JobEventListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: JobEventListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: JobEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Job event listener %r failed on %s for job %s",
                    listener, event.type.value, event.job_id,
                )


def log_job_event(event: JobEvent) -> None:
    """Default listener: one log line per event."""
    if event.type == JobEventType.COMPLETED:
        logger.info("Job %s completed: %s", event.job_id, event.result)
    elif event.type == JobEventType.FAILED:
        logger.error(
            "Job %s failed after %d attempts: %s",
            event.job_id, event.attempt, event.error,
        )
    elif event.type == JobEventType.RETRYING:
        logger.warning(
            "Job %s attempt %d failed, retrying: %s",
            event.job_id, event.attempt, event.error,
        )
    elif event.type == JobEventType.PROGRESS:
        logger.info("Job %s progress: %d%%", event.job_id, event.progress or 0)
    else:
        logger.info("Job %s started (attempt %d)", event.job_id, event.attempt)


# ---------------------------------------------------------------------------
# Module-level bus shared by the Celery task and any subscribers
# ---------------------------------------------------------------------------
job_events = JobEventBus()
job_events.subscribe(log_job_event)
