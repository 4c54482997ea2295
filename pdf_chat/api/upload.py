# =============================================================================
# Upload API — Accept a PDF and Queue It for Ingestion
# =============================================================================
#
# ENDPOINT:
#   POST /upload/pdf   multipart/form-data, file field "pdf"
#
# The file is written to `upload_dir` as
#   {epoch_millis}-{random}-{sanitised original name}
# so concurrent uploads of "report.pdf" never collide. The worker deletes it
# after a successful ingestion.
#
# Errors:
#   400 — no file, empty file, or not a PDF
#   413 — larger than max_upload_bytes (10 MB)
# =============================================================================

import asyncio
import logging
import random
import re
import time
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from pdf_chat.api.deps import get_job_queue
from pdf_chat.config import settings
from pdf_chat.models.jobs import JobPayload
from pdf_chat.models.responses import UploadResponse
from pdf_chat.workers.queue import JobQueue

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Upload"])

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitise_filename(name: str) -> str:
    """Replace anything outside [a-zA-Z0-9.-] with an underscore."""
    return _UNSAFE_CHARS.sub("_", Path(name).name)


def _is_pdf(upload: UploadFile) -> bool:
    if upload.content_type == "application/pdf":
        return True
    return bool(upload.filename) and upload.filename.lower().endswith(".pdf")


@router.post(
    "/upload/pdf",
    response_model=UploadResponse,
    summary="Upload a PDF for ingestion",
    description=(
        "Saves the PDF and queues it for parsing, chunking and embedding. "
        "Returns immediately with a jobId to poll."
    ),
)
async def upload_pdf(
    pdf: UploadFile | None = File(default=None, description="The PDF to ingest"),
    queue: JobQueue = Depends(get_job_queue),
) -> UploadResponse:
    if pdf is None or not pdf.filename:
        raise HTTPException(status_code=400, detail="No PDF file uploaded")

    if not _is_pdf(pdf):
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    content = await pdf.read()
    size = len(content)
    if size == 0:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    if size > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_upload_bytes} bytes.",
        )

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored_name = (
        f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}-"
        f"{sanitise_filename(pdf.filename)}"
    )
    file_path = upload_dir / stored_name
    # Disk write off the event loop
    await asyncio.to_thread(file_path.write_bytes, content)
    logger.info("Saved upload: %s (%d bytes) → %s", pdf.filename, size, file_path)

    payload = JobPayload(
        filename=pdf.filename,
        destination=str(upload_dir),
        path=str(file_path),
        size=size,
    )
    try:
        # Sync Redis/broker calls; keep them off the event loop
        handle = await asyncio.to_thread(queue.enqueue, payload)
    except Exception as exc:
        logger.exception("Failed to enqueue %s", pdf.filename)
        file_path.unlink(missing_ok=True)
        raise HTTPException(status_code=500, detail=f"Upload failed: {exc}") from exc

    return UploadResponse(file=pdf.filename, job_id=handle.id, size=size)
