# =============================================================================
# Embedding Service — Batch Vector Generation (Provider-Agnostic)
# =============================================================================
#
# Generates vector embeddings through any OpenAI-compatible embeddings API:
# Ollama (default, nomic-embed-text), OpenAI, or any hosted provider that
# implements the same endpoint.
#
# The SAME embedder instance serves ingestion (embed_documents) and queries
# (embed_query). Both sides must use one model and one dimensionality.
#
# No retry logic here. Ingestion retries happen at the Celery task level
# (3 attempts, exponential backoff); query-time failures are surfaced to the
# caller as GenerationFailed.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from openai import OpenAI

from pdf_chat.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class Embedder(Protocol):
    """Structural interface for anything that turns text into vectors."""

    def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        ...

    def embed_query(self, text: str) -> list[float]:
        ...


# ---------------------------------------------------------------------------
# Implementation: OpenAI-compatible embeddings endpoint
# ---------------------------------------------------------------------------


class OpenAIEmbedder:
    """
    Embeddings via the OpenAI SDK with a configurable base_url.

    API key resolution order:
      1. EMBEDDING_API_KEY
      2. OPENAI_API_KEY
      3. a placeholder when base_url points at a local server (Ollama
         accepts any key)
    """

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        dimensions: int | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.model = model or settings.embedding_model
        self.base_url = base_url or settings.embedding_base_url
        self.dimensions = dimensions or settings.embedding_dimensions
        self.batch_size = batch_size or settings.embedding_batch_size

        resolved_key = api_key or settings.embedding_api_key or settings.openai_api_key
        if not resolved_key:
            if not self.base_url:
                raise ValueError(
                    "No API key configured for embeddings. "
                    "Set EMBEDDING_API_KEY or OPENAI_API_KEY in .env"
                )
            resolved_key = "ollama"

        client_kwargs: dict = {"api_key": resolved_key}
        if self.base_url:
            client_kwargs["base_url"] = self.base_url
        self._client = OpenAI(**client_kwargs)

        logger.info(
            "Initialized embedding client (model=%s, base_url=%s)",
            self.model, self.base_url or "https://api.openai.com/v1",
        )

    def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed texts in sub-batches of batch_size.

        Returns vectors in the SAME ORDER as the input texts.
        """
        if not texts:
            return []

        all_embeddings: list[list[float]] = [[] for _ in texts]

        for i in range(0, len(texts), self.batch_size):
            batch = list(texts[i : i + self.batch_size])
            logger.debug(
                "Embedding batch %d-%d of %d texts (model=%s)",
                i + 1, min(i + self.batch_size, len(texts)), len(texts), self.model,
            )

            create_kwargs: dict = {"model": self.model, "input": batch}
            if self.dimensions:
                create_kwargs["dimensions"] = self.dimensions

            response = self._client.embeddings.create(**create_kwargs)

            # Map by response index; output order must match input order.
            for item in sorted(response.data, key=lambda x: x.index):
                all_embeddings[i + item.index] = item.embedding

        logger.info("Generated %d embeddings (model=%s)", len(texts), self.model)
        return all_embeddings

    def embed_query(self, text: str) -> list[float]:
        """Embed a single string (question or smoke-test probe)."""
        return self.embed_documents([text])[0]


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

_embedder: OpenAIEmbedder | None = None


def get_embedder() -> OpenAIEmbedder:
    """Return the shared embedder (lazy singleton, thread-safe client)."""
    global _embedder
    if _embedder is None:
        _embedder = OpenAIEmbedder()
    return _embedder
