import logging

from fastapi import APIRouter, Depends, HTTPException

from pdf_chat.api.deps import get_job_queue
from pdf_chat.models.responses import JobStatusResponse
from pdf_chat.workers.queue import JobQueue

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Jobs"])


# Sync handler: the job store client is blocking, FastAPI runs this in its
# threadpool.
@router.get(
    "/job/{job_id}",
    response_model=JobStatusResponse,
    summary="Ingestion job status",
)
def get_job_status(
    job_id: str,
    queue: JobQueue = Depends(get_job_queue),
) -> JobStatusResponse:
    """
    Current state of an ingestion job.

    404 once a finished job has dropped out of the retention window
    (newest 10 completed / 5 failed are kept).
    """
    job = queue.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    return JobStatusResponse(
        id=job.id,
        state=job.state.value,
        progress=job.progress,
        data=job.payload.to_wire(),
        returnvalue=job.result,
        failed_reason=job.failed_reason,
        attempts_made=job.attempt_count,
    )
