# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# The JSON contract between this service and the web UI. Field names on the
# wire are camelCase where the UI already expects them (jobId, failedReason,
# attemptsMade); Python code uses snake_case and FastAPI serialises by alias.
# =============================================================================

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response for GET / — confirms the API is running."""

    status: str
    timestamp: str
    version: str


class UploadResponse(BaseModel):
    """
    Response for POST /upload/pdf.

    The document is NOT queryable yet: poll GET /job/{jobId} until the
    state is "completed".
    """

    message: str = "PDF uploaded successfully and queued for processing"
    file: str = Field(description="Original filename as uploaded")
    job_id: str = Field(alias="jobId", description="Id for GET /job/{jobId}")
    size: int = Field(description="File size in bytes")

    model_config = ConfigDict(populate_by_name=True)


class JobStatusResponse(BaseModel):
    """Response for GET /job/{job_id}."""

    id: str
    state: str = Field(description="waiting, active, delayed, completed or failed")
    progress: int = 0
    data: dict[str, Any] = Field(description="The job payload as enqueued")
    returnvalue: dict[str, Any] | None = None
    failed_reason: str | None = Field(default=None, alias="failedReason")
    attempts_made: int = Field(default=0, alias="attemptsMade")

    model_config = ConfigDict(populate_by_name=True)


class SourceItem(BaseModel):
    """A citation returned with an answer."""

    filename: str
    page: int | str = Field(description='1-based page number, or "Unknown"')
    content: str = Field(description="Leading excerpt of the matching chunk")


class ChatResponse(BaseModel):
    """Response for GET /chat."""

    response: str
    sources: list[SourceItem] = []
    query: str
