# =============================================================================
# Shared Test Fixtures
# =============================================================================
#
# Everything here runs without external services:
#   - Qdrant in embedded ":memory:" mode, ChromaDB in-process
#   - a deterministic bag-of-words embedder instead of Ollama/OpenAI
#   - an AsyncMock LLM
#   - the in-memory job store and Celery in eager mode
#   - PDFs generated on the fly with fpdf2
# =============================================================================

from __future__ import annotations

import hashlib
import re
import uuid
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from fpdf import FPDF
from qdrant_client import QdrantClient

from pdf_chat.services.llm import LLMResponse
from pdf_chat.services.vectorstore import QdrantVectorStore
from pdf_chat.workers.celery_app import celery_app
from pdf_chat.workers.job_store import InMemoryJobStore

# Run tasks inline; failures are read back from the job store.
celery_app.conf.task_always_eager = True
celery_app.conf.task_eager_propagates = False

EMBEDDING_DIM = 32


class FakeEmbedder:
    """
    Hashes lowercase words into a fixed-size vector.

    Same text, same vector. Texts sharing words score higher. The last
    component is a constant so no vector is ever all zeros.
    """

    def __init__(self, dim: int = EMBEDDING_DIM) -> None:
        self.dim = dim
        self.query_calls: list[str] = []
        self.document_calls = 0

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dim
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % (self.dim - 1)
            vector[bucket] += 1.0
        vector[-1] = 1.0
        return vector

    def embed_documents(self, texts):
        self.document_calls += 1
        return [self._vector(t) for t in texts]

    def embed_query(self, text):
        self.query_calls.append(text)
        return self._vector(text)


def make_llm(content: str = "  The answer.  ") -> AsyncMock:
    llm = AsyncMock()
    llm.complete.return_value = LLMResponse(
        content=content, model="fake-model", input_tokens=10, output_tokens=5,
    )
    return llm


def write_pdf(path: Path, pages: list[str]) -> Path:
    """Write a PDF with one physical page per entry ("" = blank page)."""
    pdf = FPDF()
    for text in pages:
        pdf.add_page()
        if text:
            pdf.set_font("Helvetica", size=12)
            pdf.multi_cell(0, 10, text)
    pdf.output(str(path))
    return path


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_llm() -> AsyncMock:
    return make_llm()


@pytest.fixture
def qdrant_client() -> QdrantClient:
    return QdrantClient(location=":memory:")


@pytest.fixture
def qdrant_store(qdrant_client) -> QdrantVectorStore:
    return QdrantVectorStore(client=qdrant_client)


@pytest.fixture
def corpus_id() -> str:
    return f"test-corpus-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def make_pdf(tmp_path):
    def _make(pages: list[str], name: str = "doc.pdf") -> Path:
        return write_pdf(tmp_path / name, pages)

    return _make
