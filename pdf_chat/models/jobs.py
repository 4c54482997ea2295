# =============================================================================
# Job Payload — the JSON document carried by every ingestion job
# =============================================================================
#
# Wire format (camelCase kept for compatibility with existing clients):
#   {"filename": ..., "destination": ..., "path": ..., "size": ...,
#    "uploadTime": "2026-01-01T12:00:00.000Z"}
#
# Python code uses snake_case attributes; populate_by_name lets both spellings
# validate.
# =============================================================================

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobPayload(BaseModel):
    """
    Everything the worker needs to find and label an uploaded PDF.

    Example:
        {
            "filename": "annual-report.pdf",
            "destination": "uploads",
            "path": "uploads/1767268800000-123456789-annual-report.pdf",
            "size": 482113,
            "uploadTime": "2026-01-01T12:00:00Z"
        }
    """

    # Original name as uploaded; used for citations
    filename: str = Field(..., min_length=1)

    # Directory the file was saved into
    destination: str = ""

    # Where the worker will read the file from
    path: str = Field(..., min_length=1)

    size: int = Field(default=0, ge=0, description="File size in bytes")

    upload_time: datetime = Field(default_factory=_utc_now, alias="uploadTime")

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        """JSON-safe dict using the camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True)
