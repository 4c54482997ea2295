# =============================================================================
# Services Package — Business Logic
# =============================================================================
# Contains the core logic, separated from API handlers and Celery plumbing:
#   - parser.py: per-page PDF text extraction (pypdf or Docling)
#   - chunker.py: recursive character splitting with overlap + noise filter
#   - embedder.py: OpenAI-compatible embedding generation (batch processing)
#   - vectorstore.py: pluggable vector store protocol (Qdrant, Chroma)
#   - llm.py: multi-provider LLM abstraction (Anthropic, OpenAI-compatible)
#   - ingestion.py: the ingestion worker that ties the above together
# =============================================================================
