# =============================================================================
# Chat API — Question Answering over the Uploaded Documents
# =============================================================================
#
# ENDPOINT:
#   GET /chat?message=...
#
# Error mapping:
#   400 — message missing or blank
#   404 — nothing ingested yet (CollectionNotFound)
#   502 — embedding or LLM service failure (GenerationFailed)
#   503 — vector database unreachable (VectorStoreUnavailable) or provider
#         misconfigured (e.g., missing API key)
#   500 — anything else, still as a JSON error body
#
# Zero search hits is NOT an error: 200 with a fixed "nothing found" answer.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from pdf_chat.agents.orchestrator import answer
from pdf_chat.errors import CollectionNotFound, GenerationFailed, VectorStoreUnavailable
from pdf_chat.models.responses import ChatResponse, SourceItem

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])


@router.get(
    "/chat",
    response_model=ChatResponse,
    summary="Ask a question about the uploaded PDFs",
)
async def chat(
    message: str | None = Query(default=None, description="The user's question"),
) -> ChatResponse:
    if not message or not message.strip():
        raise HTTPException(
            status_code=400,
            detail="Message query parameter is required and must be a string",
        )

    logger.info("Received query: %s", message[:80])

    try:
        result = await answer(message)
    except CollectionNotFound as e:
        raise HTTPException(
            status_code=404,
            detail="No documents found. Please upload a PDF first.",
        ) from e
    except GenerationFailed as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except VectorStoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except ValueError as e:
        # Missing API key or configuration error
        logger.error("Configuration error: %s", e)
        raise HTTPException(
            status_code=503,
            detail=f"Service configuration error: {e}",
        ) from e
    except Exception as e:
        logger.exception("Query pipeline failed: %s", e)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process chat message: {e}",
        ) from e

    return ChatResponse(
        response=result.answer,
        sources=[SourceItem(**s.to_dict()) for s in result.sources],
        query=result.query,
    )
