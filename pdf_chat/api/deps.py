# =============================================================================
# Shared API Dependencies
# =============================================================================
# Overridable in tests via app.dependency_overrides.
# =============================================================================

from functools import lru_cache

from pdf_chat.workers.queue import JobQueue


@lru_cache
def get_job_queue() -> JobQueue:
    """The process-wide JobQueue (Celery producer + job store)."""
    return JobQueue()
