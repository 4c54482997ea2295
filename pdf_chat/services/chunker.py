# =============================================================================
# Recursive Character Chunker
# =============================================================================
#
# Splits extracted pages into bounded, overlapping chunks ready for embedding.
#
# ALGORITHM (RecursiveCharacterTextSplitter from langchain-text-splitters):
# 1. Try separators in priority order: "\n\n" → "\n" → ". " → " " → ""
# 2. Split on the first separator present in the text; any piece still
#    longer than chunk_size is split again with the next separator
# 3. Merge adjacent pieces back together up to chunk_size characters
# 4. Each new chunk starts with the previous chunk's tail, up to
#    chunk_overlap characters of whole pieces
#
# INVARIANTS:
# - len(chunk.text) <= chunk_size (the "" separator guarantees this)
# - Splitting is per page: a chunk never spans two pages, so page_number
#   is exact for citations
# - chunk_index is document-wide and assigned after noise filtering, so the
#   same file always yields the same (index, text) pairs
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from langchain_text_splitters import RecursiveCharacterTextSplitter

from pdf_chat.services.parser import Page

logger = logging.getLogger(__name__)

DEFAULT_SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class Chunk:
    """A slice of one page's text: the unit of embedding and retrieval."""

    text: str
    filename: str
    page_number: int  # 1-indexed page this chunk came from
    chunk_index: int  # 0-indexed position within the document
    metadata: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def split_pages(
    pages: Sequence[Page],
    chunk_size: int = 1000,
    chunk_overlap: int = 200,
    separators: Sequence[str] | None = None,
) -> list[Chunk]:
    """
    Split pages into overlapping chunks of at most chunk_size characters.

    Returns every chunk produced, including whitespace-only or tiny ones.
    Use drop_noise() to discard those. chunk_index here is the raw
    position before filtering.

    Raises:
        ValueError: If chunk_overlap >= chunk_size.
    """
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=list(separators or DEFAULT_SEPARATORS),
        length_function=len,
    )

    chunks: list[Chunk] = []
    for page in pages:
        for text in splitter.split_text(page.text):
            chunks.append(Chunk(
                text=text,
                filename=page.filename,
                page_number=page.page_number,
                chunk_index=len(chunks),
                metadata=dict(page.metadata),
            ))

    logger.debug(
        "Split %d pages into %d raw chunks (size=%d, overlap=%d)",
        len(pages), len(chunks), chunk_size, chunk_overlap,
    )
    return chunks


def drop_noise(chunks: Sequence[Chunk], min_chars: int = 10) -> list[Chunk]:
    """
    Discard chunks whose stripped length is <= min_chars and renumber
    the survivors 0..n-1.
    """
    kept = [c for c in chunks if len(c.text.strip()) > min_chars]
    for index, chunk in enumerate(kept):
        chunk.chunk_index = index
    return kept


def chunk_pages(
    pages: Sequence[Page],
    chunk_size: int = 1000,
    chunk_overlap: int = 200,
    separators: Sequence[str] | None = None,
    min_chars: int = 10,
) -> list[Chunk]:
    """Split pages and drop noise in one call."""
    raw = split_pages(pages, chunk_size, chunk_overlap, separators)
    kept = drop_noise(raw, min_chars)
    logger.info(
        "Chunked %d pages: %d raw chunks, %d kept (min_chars=%d)",
        len(pages), len(raw), len(kept), min_chars,
    )
    return kept
