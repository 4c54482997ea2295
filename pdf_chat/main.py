# =============================================================================
# FastAPI Application Entry Point
# =============================================================================
#
# Run the API:
#   uvicorn pdf_chat.main:app --reload --port 8000
#
# Run the ingestion worker (separate process):
#   celery -A pdf_chat.workers.celery_app worker --loglevel=info
# =============================================================================

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pdf_chat.api import chat, health, jobs, upload
from pdf_chat.config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Upload PDFs and ask questions answered from their content, "
        "with page-level citations."
    ),
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=True,
)

app.include_router(health.router)
app.include_router(upload.router)
app.include_router(jobs.router)
app.include_router(chat.router)
