# =============================================================================
# Retrieval — Question Embedding + Top-k Similarity Search
# =============================================================================
#
# The question is embedded with the SAME embedder used at ingestion.
# Mismatched embedding spaces do not error; they just return poor matches.
#
# Ranking and tie-breaks are whatever the vector database returns.
#
# The embedder and vector store clients are sync, so calls go through
# asyncio.to_thread() to keep the event loop free for other requests.
# =============================================================================

from __future__ import annotations

import asyncio
import logging

from pdf_chat.config import settings
from pdf_chat.errors import CollectionNotFound, GenerationFailed, VectorStoreUnavailable
from pdf_chat.services.embedder import Embedder, get_embedder
from pdf_chat.services.vectorstore import (
    VectorSearchResult,
    VectorStore,
    get_vector_store,
)

logger = logging.getLogger(__name__)


async def retrieve(
    query: str,
    corpus_id: str,
    top_k: int | None = None,
    embedder: Embedder | None = None,
    vector_store: VectorStore | None = None,
) -> list[VectorSearchResult]:
    """
    Return up to top_k records from the corpus most similar to the query.

    Raises:
        CollectionNotFound: Nothing has ever been ingested into corpus_id.
        GenerationFailed: The question could not be embedded.
        VectorStoreUnavailable: The vector database call failed.
    """
    store = vector_store or get_vector_store()
    k = top_k or settings.retrieval_top_k

    try:
        exists = await asyncio.to_thread(store.collection_exists, corpus_id)
    except Exception as exc:
        logger.exception("Vector store unreachable while opening '%s'", corpus_id)
        raise VectorStoreUnavailable(f"Vector store is unavailable: {exc}") from exc
    if not exists:
        raise CollectionNotFound(corpus_id)

    embedder = embedder or get_embedder()
    try:
        query_vector = await asyncio.to_thread(embedder.embed_query, query)
    except Exception as exc:
        logger.exception("Failed to embed query")
        raise GenerationFailed(f"Failed to embed the question: {exc}") from exc

    try:
        hits = await asyncio.to_thread(store.search, corpus_id, query_vector, k)
    except Exception as exc:
        logger.exception("Similarity search failed on '%s'", corpus_id)
        raise VectorStoreUnavailable(f"Similarity search failed: {exc}") from exc
    logger.info(
        "Retrieved %d/%d records from '%s' for query '%s'",
        len(hits), k, corpus_id, query[:80],
    )
    return hits
