# =============================================================================
# Ingestion Worker — PDF → Chunks → Embeddings → Vector Collection
# =============================================================================
#
# The body of one ingestion job, independent of the queue that runs it.
# The Celery task in pdf_chat/workers/tasks.py owns state transitions,
# retries and events; this module only does the work and raises on failure.
#
# PIPELINE:
#   1. Check the uploaded file exists              → FileMissing
#   2. Extract per-page text                       → ExtractionFailed
#   3. Tag pages with filename + source_path
#   4. Split into overlapping chunks, drop noise   → NoValidChunks
#   5. Smoke-test the embedder, then bulk embed    → EmbeddingServiceUnavailable
#   6. ensure_collection() + upsert
#   7. Best-effort delete of the uploaded file (never fails the job)
#
# IDEMPOTENT RETRIES:
# Record ids are uuid5(sha256(file bytes) + ":" + chunk_index). A job that
# fails after a partial upsert and is retried overwrites its own earlier
# records instead of duplicating them. Consequence: uploading a byte-identical
# file twice also lands on the same records.
#
# Celery workers are SYNCHRONOUS: nothing in here is async.
# =============================================================================

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pdf_chat.config import settings
from pdf_chat.errors import (
    EmbeddingServiceUnavailable,
    ExtractionFailed,
    FileMissing,
    NoValidChunks,
)
from pdf_chat.services.chunker import Chunk, chunk_pages
from pdf_chat.services.embedder import Embedder, get_embedder
from pdf_chat.services.parser import PdfParser, get_pdf_parser
from pdf_chat.services.vectorstore import VectorRecord, VectorStore, get_vector_store

if TYPE_CHECKING:
    from pdf_chat.workers.job_store import Job

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# Coarse progress reported at step boundaries
PROGRESS_EXTRACTED = 20
PROGRESS_CHUNKED = 40
PROGRESS_EMBEDDED = 70
PROGRESS_STORED = 90
PROGRESS_DONE = 100


@dataclass
class ProcessResult:
    """Outcome of one successful ingestion, stored as the job's return value."""

    success: bool
    chunk_count: int
    filename: str
    processing_ms: int

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "documentsProcessed": self.chunk_count,
            "filename": self.filename,
            "processingTimeMs": self.processing_ms,
        }


def record_id_for(file_digest: str, chunk_index: int) -> str:
    """Deterministic vector record id for one chunk of one file."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{file_digest}:{chunk_index}"))


def _sha256_of(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for block in iter(lambda: fh.read(1024 * 1024), b""):
            digest.update(block)
    return digest.hexdigest()


class IngestionWorker:
    """
    Processes one ingestion job end to end.

    Collaborators are injectable so tests can run against fakes and
    in-memory stores. Defaults come from the service factories.
    """

    def __init__(
        self,
        parser: PdfParser | None = None,
        embedder: Embedder | None = None,
        vector_store: VectorStore | None = None,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
        separators: list[str] | None = None,
        min_chunk_chars: int | None = None,
    ) -> None:
        self._parser = parser
        self._embedder = embedder
        self._store = vector_store
        self.chunk_size = chunk_size or settings.chunk_size
        self.chunk_overlap = (
            settings.chunk_overlap if chunk_overlap is None else chunk_overlap
        )
        self.separators = separators or settings.chunk_separators
        self.min_chunk_chars = (
            settings.min_chunk_chars if min_chunk_chars is None else min_chunk_chars
        )

    # Resolved lazily so constructing a worker never opens client connections
    @property
    def parser(self) -> PdfParser:
        if self._parser is None:
            self._parser = get_pdf_parser()
        return self._parser

    @property
    def embedder(self) -> Embedder:
        if self._embedder is None:
            self._embedder = get_embedder()
        return self._embedder

    @property
    def vector_store(self) -> VectorStore:
        if self._store is None:
            self._store = get_vector_store()
        return self._store

    def process(
        self,
        job: Job,
        on_progress: ProgressCallback | None = None,
        corpus_id: str | None = None,
    ) -> ProcessResult:
        """
        Ingest the PDF referenced by job.payload into the corpus.

        Raises:
            IngestionError subclasses on any failure in steps 1-6. The caller
            decides whether to retry.
        """
        started = time.monotonic()
        corpus = corpus_id or settings.collection_name
        payload = job.payload
        source = Path(payload.path)
        report = on_progress or (lambda _pct: None)

        logger.info(
            "[%s] Processing '%s' (%d bytes) into '%s'",
            job.id, payload.filename, payload.size, corpus,
        )

        # --- Step 1: the upload must still be on disk ---
        if not source.is_file():
            raise FileMissing(f"File not found: {source}")

        # --- Step 2: per-page extraction ---
        pages = self.parser.parse(source, payload.filename)
        if not pages:
            raise ExtractionFailed(
                f"No content could be extracted from '{payload.filename}'"
            )
        logger.info("[%s] Extracted %d pages", job.id, len(pages))

        # --- Step 3: provenance ---
        for page in pages:
            page.filename = payload.filename
            page.metadata["filename"] = payload.filename
            page.metadata["source_path"] = str(source)
        report(PROGRESS_EXTRACTED)

        # --- Step 4: chunk + noise filter ---
        chunks = chunk_pages(
            pages,
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            separators=self.separators,
            min_chars=self.min_chunk_chars,
        )
        if not chunks:
            raise NoValidChunks(
                f"'{payload.filename}' produced no chunks longer than "
                f"{self.min_chunk_chars} characters"
            )
        logger.info("[%s] Created %d chunks", job.id, len(chunks))
        report(PROGRESS_CHUNKED)

        # --- Step 5: embeddings ---
        vectors = self._embed(job.id, chunks)
        report(PROGRESS_EMBEDDED)

        # --- Step 6: ensure collection + upsert ---
        file_digest = _sha256_of(source)
        records = [
            VectorRecord(
                record_id=record_id_for(file_digest, chunk.chunk_index),
                vector=vector,
                text=chunk.text,
                metadata={
                    "filename": chunk.filename,
                    "page_number": chunk.page_number,
                    "chunk_index": chunk.chunk_index,
                    "source_sha256": file_digest,
                },
            )
            for chunk, vector in zip(chunks, vectors)
        ]
        self.vector_store.ensure_collection(corpus, len(vectors[0]))
        self.vector_store.upsert(corpus, records)
        report(PROGRESS_STORED)

        # --- Step 7: cleanup ---
        try:
            source.unlink()
            logger.info("[%s] Deleted uploaded file %s", job.id, source)
        except OSError as exc:
            logger.warning(
                "[%s] Could not delete uploaded file %s: %s", job.id, source, exc,
            )

        result = ProcessResult(
            success=True,
            chunk_count=len(records),
            filename=payload.filename,
            processing_ms=int((time.monotonic() - started) * 1000),
        )
        report(PROGRESS_DONE)
        logger.info("[%s] Ingestion complete: %s", job.id, result.to_dict())
        return result

    def _embed(self, job_id: str, chunks: list[Chunk]) -> list[list[float]]:
        try:
            probe = self.embedder.embed_query("test")
        except Exception as exc:
            raise EmbeddingServiceUnavailable(
                f"Embedding service is not reachable: {exc}"
            ) from exc
        if not probe:
            raise EmbeddingServiceUnavailable(
                "Embedding service returned an empty vector"
            )

        try:
            vectors = self.embedder.embed_documents([c.text for c in chunks])
        except Exception as exc:
            raise EmbeddingServiceUnavailable(
                f"Embedding failed for {len(chunks)} chunks: {exc}"
            ) from exc
        if len(vectors) != len(chunks):
            raise EmbeddingServiceUnavailable(
                f"Expected {len(chunks)} embeddings, got {len(vectors)}"
            )

        logger.info(
            "[%s] Generated %d embeddings (dimension=%d)",
            job_id, len(vectors), len(vectors[0]),
        )
        return vectors
