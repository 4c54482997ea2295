# =============================================================================
# Celery Task Definitions — Document Ingestion
# =============================================================================
#
# `process_pdf` wraps IngestionWorker.process() with the job lifecycle:
#
#   waiting ──▶ active ──▶ completed
#                 │
#                 ├──▶ delayed ──▶ active ...   (attempt < max_attempts)
#                 └──▶ failed                   (attempt == max_attempts)
#
# Every transition is written to the job store and published on the job
# event bus.
#
# RETRY STRATEGY:
# Attempts are counted from Celery's own retry counter (request.retries + 1).
# Backoff is exponential from the job's base delay: 2s, 4s, ... After the
# last attempt the job is marked failed, failedReason keeps the error
# message, and the exception propagates so Celery records FAILURE too.
#
# IMPORTANT: Celery workers are SYNCHRONOUS. Nothing here is async.
# =============================================================================

import logging
import time

from pdf_chat.models.jobs import JobPayload
from pdf_chat.services.ingestion import IngestionWorker
from pdf_chat.workers.celery_app import celery_app
from pdf_chat.workers.events import JobEvent, JobEventType, job_events
from pdf_chat.workers.job_store import (
    Job,
    JobOptions,
    JobState,
    get_job_store,
)

logger = logging.getLogger(__name__)

_worker: IngestionWorker | None = None


def get_ingestion_worker() -> IngestionWorker:
    """One IngestionWorker per process; its clients are reused across jobs."""
    global _worker
    if _worker is None:
        _worker = IngestionWorker()
    return _worker


def _load_job(store, job_id: str, payload: dict, options: JobOptions) -> Job:
    job = store.get(job_id)
    if job is None:
        # Dispatched without going through JobQueue, or its record was evicted
        job = Job(
            id=job_id,
            payload=JobPayload.model_validate(payload),
            options=options,
        )
    return job


@celery_app.task(bind=True, name="process_pdf")
def process_pdf(
    self,
    payload: dict,
    max_attempts: int | None = None,
    backoff_delay_ms: int | None = None,
    backoff_type: str = "exponential",
) -> dict:
    """
    Ingest one uploaded PDF.

    Args:
        self: Bound task; request.id is the job id.
        payload: JobPayload in its JSON wire form.
        max_attempts: Retry ceiling, used if the job record has none.
        backoff_delay_ms: Base backoff delay, used likewise.
        backoff_type: "exponential" or "fixed".

    Returns:
        The ProcessResult as a dict (also stored as the job's returnvalue).
    """
    job_id = self.request.id
    attempt = self.request.retries + 1
    store = get_job_store()

    fallback_options = JobOptions(backoff_type=backoff_type)
    if max_attempts is not None:
        fallback_options.max_attempts = max_attempts
    if backoff_delay_ms is not None:
        fallback_options.backoff_delay_ms = backoff_delay_ms
    job = _load_job(store, job_id, payload, fallback_options)

    job.state = JobState.ACTIVE
    job.attempt_count = attempt
    store.save(job)
    job_events.publish(JobEvent(JobEventType.ACTIVE, job_id, attempt=attempt))
    logger.info(
        "[%s] Attempt %d/%d for '%s'",
        job_id, attempt, job.options.max_attempts, job.payload.filename,
    )

    def on_progress(percent: int) -> None:
        job.progress = percent
        store.save(job)
        job_events.publish(
            JobEvent(JobEventType.PROGRESS, job_id, attempt=attempt, progress=percent)
        )

    try:
        result = get_ingestion_worker().process(job, on_progress=on_progress)
    except Exception as exc:
        job.last_error = str(exc)

        if attempt >= job.options.max_attempts:
            job.state = JobState.FAILED
            job.finished_at = time.time()
            store.save(job)
            logger.exception(
                "[%s] Ingestion failed after %d attempts", job_id, attempt,
            )
            job_events.publish(JobEvent(
                JobEventType.FAILED, job_id, attempt=attempt, error=job.last_error,
            ))
            raise

        countdown = job.options.backoff_seconds(attempt)
        job.state = JobState.DELAYED
        store.save(job)
        logger.warning(
            "[%s] Attempt %d failed (%s); retrying in %.1fs",
            job_id, attempt, exc, countdown,
        )
        job_events.publish(JobEvent(
            JobEventType.RETRYING, job_id, attempt=attempt, error=job.last_error,
        ))
        raise self.retry(
            exc=exc,
            countdown=countdown,
            max_retries=job.options.max_attempts - 1,
        )

    job.state = JobState.COMPLETED
    job.result = result.to_dict()
    job.finished_at = time.time()
    store.save(job)
    job_events.publish(JobEvent(
        JobEventType.COMPLETED, job_id, attempt=attempt, result=job.result,
    ))
    return job.result
