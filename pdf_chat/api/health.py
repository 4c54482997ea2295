from datetime import datetime, timezone

from fastapi import APIRouter

from pdf_chat.config import settings
from pdf_chat.models.responses import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/", response_model=HealthResponse, summary="Service health check")
async def health() -> HealthResponse:
    return HealthResponse(
        status=f"{settings.app_name} Server Running!",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
    )
