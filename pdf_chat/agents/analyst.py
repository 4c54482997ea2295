# =============================================================================
# Analyst — Grounded Prompt, Generation and Source Snippets
# =============================================================================
#
# Context layout: one block per retrieved record, numbered from 1 and tagged
# with the source filename, separated by blank lines:
#
#   Document 1 (report.pdf): ...chunk text...
#
#   Document 2 (report.pdf): ...chunk text...
#
# The prompt tells the model to answer from that context only and to say so
# plainly when the answer is not there. It goes out as a single user message
# with no system prompt; the model output is whitespace-trimmed.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pdf_chat.config import settings
from pdf_chat.errors import GenerationFailed
from pdf_chat.services.llm import LLMProvider
from pdf_chat.services.vectorstore import VectorSearchResult

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = (
    "I couldn't find any relevant information in the uploaded documents "
    "to answer your question."
)

PROMPT_TEMPLATE = (
    "Based on the following context from uploaded PDF documents, answer the "
    "user's question. If the answer cannot be found in the context, say so "
    "clearly.\n\n"
    "Context:\n"
    "{context}\n\n"
    "Question: {query}\n\n"
    "Answer:"
)

UNKNOWN_PAGE = "Unknown"


@dataclass
class SourceSnippet:
    """A citation shown alongside the answer."""

    filename: str
    page: int | str  # page number, or "Unknown"
    content: str     # leading excerpt of the chunk, ellipsised

    def to_dict(self) -> dict:
        return {"filename": self.filename, "page": self.page, "content": self.content}


def build_context(hits: Sequence[VectorSearchResult]) -> str:
    return "\n\n".join(
        f"Document {i} ({hit.metadata.get('filename', 'unknown')}): {hit.text}"
        for i, hit in enumerate(hits, start=1)
    )


def build_prompt(query: str, hits: Sequence[VectorSearchResult]) -> str:
    return PROMPT_TEMPLATE.format(context=build_context(hits), query=query)


def extract_sources(
    hits: Sequence[VectorSearchResult],
    excerpt_chars: int | None = None,
) -> list[SourceSnippet]:
    """One snippet per hit, in retrieval order."""
    limit = excerpt_chars or settings.source_excerpt_chars
    sources = []
    for hit in hits:
        page = hit.metadata.get("page_number")
        sources.append(SourceSnippet(
            filename=hit.metadata.get("filename", "unknown"),
            page=page if page else UNKNOWN_PAGE,
            content=hit.text[:limit] + "...",
        ))
    return sources


async def generate(
    query: str,
    hits: Sequence[VectorSearchResult],
    llm: LLMProvider,
) -> str:
    """
    Ask the LLM to answer from the retrieved context.

    Raises:
        GenerationFailed: The provider call failed for any reason.
    """
    prompt = build_prompt(query, hits)
    try:
        response = await llm.complete(prompt)
    except Exception as exc:
        logger.exception("LLM generation failed")
        raise GenerationFailed(f"Failed to generate an answer: {exc}") from exc

    logger.info(
        "Generated answer (model=%s, input_tokens=%d, output_tokens=%d)",
        response.model, response.input_tokens, response.output_tokens,
    )
    return response.content.strip()
