# =============================================================================
# Job Queue — Enqueue and Inspect Ingestion Jobs
# =============================================================================
#
# The producer side of the ingestion pipeline, used by the upload endpoint.
# enqueue() first records a `waiting` Job in the job store, then dispatches
# the Celery task with task_id == job.id, so the worker and the status
# endpoint agree on the id.
# =============================================================================

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from pdf_chat.config import settings
from pdf_chat.models.jobs import JobPayload
from pdf_chat.workers.job_store import Job, JobOptions, JobState, JobStore, get_job_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobHandle:
    """What the producer gets back from enqueue()."""

    id: str
    name: str


class JobQueue:
    """Thin client over the Celery queue plus the job store."""

    def __init__(self, store: JobStore | None = None, name: str | None = None) -> None:
        self.store = store or get_job_store()
        self.name = name or settings.queue_name

    def enqueue(
        self,
        payload: JobPayload,
        options: JobOptions | None = None,
    ) -> JobHandle:
        # Imported here: tasks imports the ingestion stack, which the API
        # process only needs once a job is actually dispatched.
        from pdf_chat.workers.tasks import process_pdf

        job = Job(payload=payload, options=options or JobOptions())
        self.store.save(job)

        try:
            process_pdf.apply_async(
                args=[payload.to_wire()],
                kwargs={
                    "max_attempts": job.options.max_attempts,
                    "backoff_delay_ms": job.options.backoff_delay_ms,
                    "backoff_type": job.options.backoff_type,
                },
                task_id=job.id,
                queue=self.name,
            )
        except Exception as exc:
            logger.exception("Could not dispatch job %s to '%s'", job.id, self.name)
            job.state = JobState.FAILED
            job.last_error = f"Dispatch failed: {exc}"
            job.finished_at = time.time()
            self.store.save(job)
            raise

        logger.info(
            "Enqueued job %s for '%s' (%d bytes)", job.id, payload.filename, payload.size,
        )
        return JobHandle(id=job.id, name=job.name)

    def get_job(self, job_id: str) -> Job | None:
        """The job's current record, or None if unknown or past retention."""
        return self.store.get(job_id)
