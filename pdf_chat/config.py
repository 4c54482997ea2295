# =============================================================================
# Application Configuration — Pydantic Settings
# =============================================================================
#
# All tunables live in one `Settings` object loaded from (highest first):
#   1. Environment variables (e.g., `QDRANT_URL=...`)
#   2. Values from the .env file
#   3. Default values defined below
#
# Defaults target a local stack: Redis on 6379, Qdrant on 6333 and Ollama on
# 11434 serving both the embedding model and the chat model through its
# OpenAI-compatible endpoint.
#
# USAGE:
#   from pdf_chat.config import settings
#   print(settings.collection_name)
# =============================================================================

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults for local development. Override via
    environment variables or a .env file.
    """

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_name: str = "PDF Chat"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Redis / Celery
    # -------------------------------------------------------------------------
    # Redis database numbers isolate different concerns:
    #   db 0 = Celery broker (task queue)
    #   db 1 = Celery result backend
    #   db 2 = Job store (job state, attempts, retention lists)
    # -------------------------------------------------------------------------
    redis_url: str = "redis://localhost:6379/2"
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"
    # Run tasks inline in the calling process (tests, single-process dev)
    celery_task_always_eager: bool = False
    # Per-task time limits in seconds. None (default) means no limit: a large
    # PDF on a local embedding server may legitimately take many minutes.
    celery_task_soft_time_limit: int | None = None
    celery_task_time_limit: int | None = None

    # -------------------------------------------------------------------------
    # Job Queue
    # -------------------------------------------------------------------------
    # Retry policy: at most `job_attempts` attempts, exponential backoff with
    # `job_backoff_delay_ms` as the base (2s, 4s, ...).
    # Retention: only the newest N completed / failed jobs stay queryable.
    # -------------------------------------------------------------------------
    queue_name: str = "file-upload-queue"
    job_store_type: str = "redis"  # "redis" or "memory"
    job_key_prefix: str = "pdf-chat"
    job_attempts: int = 3
    job_backoff_delay_ms: int = 2000
    keep_completed_jobs: int = 10
    keep_failed_jobs: int = 5

    # -------------------------------------------------------------------------
    # File Upload
    # -------------------------------------------------------------------------
    # Uploaded PDFs are transient: the worker deletes them after a successful
    # ingestion.
    # -------------------------------------------------------------------------
    upload_dir: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    frontend_url: str = "http://localhost:3000"

    # -------------------------------------------------------------------------
    # Embedding Configuration
    # -------------------------------------------------------------------------
    # Any OpenAI-compatible embeddings endpoint. Ingestion and query MUST use
    # the same model: vectors from different models live in different spaces
    # and search quality degrades silently instead of erroring.
    #
    # embedding_dimensions is only sent when set (Ollama ignores it, OpenAI's
    # text-embedding-3-* models honour it).
    # -------------------------------------------------------------------------
    embedding_model: str = "nomic-embed-text"
    embedding_base_url: str | None = "http://localhost:11434/v1"
    embedding_api_key: str | None = None
    embedding_dimensions: int | None = None
    embedding_batch_size: int = 64
    openai_api_key: str = ""

    # -------------------------------------------------------------------------
    # LLM Configuration — Multi-Provider
    # -------------------------------------------------------------------------
    #   - "anthropic": Claude via native Anthropic SDK
    #   - "openai_compatible": any OpenAI-compatible API (Ollama, OpenAI,
    #     DeepSeek, Qwen, ...)
    #
    # Example configs:
    #   Ollama:  provider=openai_compatible, base_url=http://localhost:11434/v1, model=llama3.2
    #   OpenAI:  provider=openai_compatible, base_url unset, model=gpt-4.1-mini
    #   Claude:  provider=anthropic, model=claude-sonnet-4-6
    # -------------------------------------------------------------------------
    llm_provider: str = "openai_compatible"
    llm_base_url: str | None = "http://localhost:11434/v1"
    llm_api_key: str | None = None
    llm_model: str = "llama3.2"
    llm_temperature: float = 0.1
    llm_max_tokens: int = 1024
    anthropic_api_key: str = ""

    # -------------------------------------------------------------------------
    # Vector Store Configuration — Pluggable Backend
    # -------------------------------------------------------------------------
    #   - "qdrant": Qdrant server (QDRANT_URL) or embedded ":memory:"
    #   - "chroma": ChromaDB (in-process, or client/server via CHROMA_URL)
    #
    # collection_name is the single corpus shared by every upload. Both
    # pipelines accept a corpus_id override that defaults to it.
    # -------------------------------------------------------------------------
    vectorstore_type: str = "qdrant"
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str | None = None
    chroma_url: str | None = None
    collection_name: str = "pdf-chat-collection"

    # -------------------------------------------------------------------------
    # PDF Parsing
    # -------------------------------------------------------------------------
    #   - "pypdf": one Page per physical page (default)
    #   - "docling": layout-aware extraction, grouped back into pages
    # -------------------------------------------------------------------------
    pdf_parser: str = "pypdf"

    # -------------------------------------------------------------------------
    # Chunking Configuration
    # -------------------------------------------------------------------------
    # Character-based recursive splitting. Separators are tried in order:
    # paragraph break, line break, sentence end, space, hard cut ("").
    # Chunks whose stripped length is <= min_chunk_chars are noise and dropped.
    # -------------------------------------------------------------------------
    chunk_size: int = 1000
    chunk_overlap: int = 200
    chunk_separators: list[str] = ["\n\n", "\n", ". ", " ", ""]
    min_chunk_chars: int = 10

    # -------------------------------------------------------------------------
    # Retrieval Configuration
    # -------------------------------------------------------------------------
    retrieval_top_k: int = 3
    source_excerpt_chars: int = 200

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_chunking(self) -> "Settings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        if self.job_attempts < 1:
            raise ValueError("job_attempts must be at least 1")
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Create and cache a Settings instance.

    In tests, override with FastAPI's dependency_overrides:
        app.dependency_overrides[get_settings] = lambda: Settings(debug=True)
    """
    return Settings()


# ---------------------------------------------------------------------------
# Module-level convenience instance
# ---------------------------------------------------------------------------
settings = Settings()
