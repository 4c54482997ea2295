# =============================================================================
# Vector Store Abstraction — Pluggable Backend Protocol
# =============================================================================
#
# A common interface over the vector database, with concrete implementations
# for Qdrant (default) and ChromaDB.
#
# Every operation takes the collection name explicitly (the corpus_id). The
# deployment uses one well-known collection, but nothing here assumes it.
#
# ensure_collection() is idempotent create-if-absent. The ingestion worker
# calls it unconditionally before every upsert instead of probing for
# existence and branching, so two first-ever ingestions racing to create the
# collection both end up appending to it.
#
# All methods are sync. Celery calls them directly; the query pipeline wraps
# them in asyncio.to_thread().
#
# ARCHITECTURE:
#   VectorStore (Protocol)
#   ├── QdrantVectorStore  — Qdrant server, or embedded ":memory:"
#   └── ChromaVectorStore  — ChromaDB (in-process or client/server)
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

import chromadb
from qdrant_client import QdrantClient
from qdrant_client.http import models

from pdf_chat.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class VectorRecord:
    """
    One embedded chunk as stored in the collection.

    Immutable once written. record_id is deterministic per (file content,
    chunk index), so re-writing the same chunk overwrites instead of
    duplicating.
    """

    record_id: str
    vector: list[float]
    text: str
    metadata: dict = field(default_factory=dict)
    # metadata keys: filename, page_number, chunk_index, source_sha256


@dataclass
class VectorSearchResult:
    """A single hit from a similarity search."""

    record_id: str
    text: str
    score: float  # higher = more similar
    metadata: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class VectorStore(Protocol):
    """Structural interface implemented by every backend."""

    def collection_exists(self, name: str) -> bool:
        ...

    def ensure_collection(self, name: str, dimension: int) -> None:
        """Create the collection if it does not exist. Safe to call always."""
        ...

    def upsert(self, name: str, records: Sequence[VectorRecord]) -> int:
        """Write records, overwriting any with the same record_id."""
        ...

    def search(
        self, name: str, query_vector: list[float], top_k: int = 3,
    ) -> list[VectorSearchResult]:
        """Return up to top_k records, best match first."""
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Qdrant
# ---------------------------------------------------------------------------


class QdrantVectorStore:
    """
    Qdrant-backed vector store.

    Payloads use the {"page_content", "metadata"} layout, so collections
    written here stay readable by LangChain's Qdrant integration.
    Distance is cosine.
    """

    def __init__(self, client: QdrantClient | None = None) -> None:
        # location accepts a URL or ":memory:" for the embedded engine
        self._client = client or QdrantClient(
            location=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
        )

    def collection_exists(self, name: str) -> bool:
        return bool(self._client.collection_exists(collection_name=name))

    def ensure_collection(self, name: str, dimension: int) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")

        if self.collection_exists(name):
            self._check_dimension(name, dimension)
            return

        try:
            self._client.create_collection(
                collection_name=name,
                vectors_config=models.VectorParams(
                    size=dimension, distance=models.Distance.COSINE,
                ),
            )
            logger.info(
                "Created Qdrant collection '%s' (dimension=%d)", name, dimension,
            )
        except Exception:
            # Another writer created it between our check and create.
            if self.collection_exists(name):
                logger.info("Collection '%s' created concurrently; reusing it", name)
                return
            raise

    def upsert(self, name: str, records: Sequence[VectorRecord]) -> int:
        if not records:
            return 0
        self._client.upsert(
            collection_name=name,
            wait=True,
            points=[
                models.PointStruct(
                    id=record.record_id,
                    vector=record.vector,
                    payload={
                        "page_content": record.text,
                        "metadata": record.metadata,
                    },
                )
                for record in records
            ],
        )
        logger.info("Upserted %d records into Qdrant '%s'", len(records), name)
        return len(records)

    def search(
        self, name: str, query_vector: list[float], top_k: int = 3,
    ) -> list[VectorSearchResult]:
        response = self._client.query_points(
            collection_name=name,
            query=query_vector,
            limit=max(1, top_k),
            with_payload=True,
            with_vectors=False,
        )
        results: list[VectorSearchResult] = []
        for point in response.points:
            payload = point.payload or {}
            results.append(VectorSearchResult(
                record_id=str(point.id),
                text=payload.get("page_content", ""),
                score=float(point.score),
                metadata=dict(payload.get("metadata") or {}),
            ))
        return results

    def _check_dimension(self, name: str, dimension: int) -> None:
        info = self._client.get_collection(collection_name=name)
        params = getattr(getattr(info, "config", None), "params", None)
        configured = getattr(getattr(params, "vectors", None), "size", None)
        if configured is not None and int(configured) != int(dimension):
            raise RuntimeError(
                f"Qdrant collection '{name}' has vector size {configured}, "
                f"but the embedder produced {dimension}. Ingestion and query "
                "must use the same embedding model."
            )


# ---------------------------------------------------------------------------
# Implementation 2: ChromaDB
# ---------------------------------------------------------------------------


class ChromaVectorStore:
    """
    ChromaDB-backed vector store.

    Supports both in-process mode (default, no extra infra) and
    client/server mode when CHROMA_URL is set.
    """

    def __init__(self, client=None) -> None:
        if client is not None:
            self._client = client
        elif settings.chroma_url:
            self._client = chromadb.HttpClient(host=settings.chroma_url)
        else:
            self._client = chromadb.Client()

    def collection_exists(self, name: str) -> bool:
        # Older clients list Collection objects, newer ones list names
        names = {getattr(c, "name", c) for c in self._client.list_collections()}
        return name in names

    def ensure_collection(self, name: str, dimension: int) -> None:
        # Chroma fixes the dimension on first insert; cosine matches Qdrant.
        self._client.get_or_create_collection(
            name=name,
            metadata={"hnsw:space": "cosine"},
        )

    def upsert(self, name: str, records: Sequence[VectorRecord]) -> int:
        if not records:
            return 0
        collection = self._client.get_collection(name=name)
        collection.upsert(
            ids=[r.record_id for r in records],
            documents=[r.text for r in records],
            embeddings=[r.vector for r in records],
            metadatas=[_sanitise_chroma_metadata(r.metadata) for r in records],
        )
        logger.info("Upserted %d records into ChromaDB '%s'", len(records), name)
        return len(records)

    def search(
        self, name: str, query_vector: list[float], top_k: int = 3,
    ) -> list[VectorSearchResult]:
        collection = self._client.get_collection(name=name)
        results = collection.query(
            query_embeddings=[query_vector],
            n_results=max(1, top_k),
            include=["documents", "metadatas", "distances"],
        )

        search_results: list[VectorSearchResult] = []
        if results and results["ids"] and results["ids"][0]:
            for i, chroma_id in enumerate(results["ids"][0]):
                distance = results["distances"][0][i] if results["distances"] else 0.0
                metadata = results["metadatas"][0][i] if results["metadatas"] else {}
                content = results["documents"][0][i] if results["documents"] else ""
                search_results.append(VectorSearchResult(
                    record_id=chroma_id,
                    text=content or "",
                    # ChromaDB cosine distance is in [0, 2]; convert to similarity
                    score=round(1.0 - distance, 4),
                    metadata=dict(metadata or {}),
                ))
        return search_results


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

_store: QdrantVectorStore | ChromaVectorStore | None = None


def get_vector_store() -> QdrantVectorStore | ChromaVectorStore:
    """
    Return the configured vector store backend (lazy singleton).

    Reads `vectorstore_type` from settings:
    - "qdrant" → QdrantVectorStore (default)
    - "chroma" → ChromaVectorStore
    """
    global _store
    if _store is None:
        if settings.vectorstore_type == "chroma":
            logger.info("Using ChromaDB vector store")
            _store = ChromaVectorStore()
        else:
            logger.info("Using Qdrant vector store at %s", settings.qdrant_url)
            _store = QdrantVectorStore()
    return _store


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _sanitise_chroma_metadata(metadata: dict) -> dict:
    """
    ChromaDB metadata values must be str, int, float, or bool.

    - list → comma-separated string
    - None → empty string
    """
    sanitised = {}
    for key, value in metadata.items():
        if value is None:
            sanitised[key] = ""
        elif isinstance(value, list):
            sanitised[key] = ",".join(str(v) for v in value)
        elif isinstance(value, (str, int, float, bool)):
            sanitised[key] = value
        else:
            sanitised[key] = str(value)
    return sanitised
