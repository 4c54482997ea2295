# =============================================================================
# Error Taxonomy
# =============================================================================
#
#   PdfChatError
#   ├── IngestionError               → raised inside the Celery task; retried
#   │   ├── FileMissing
#   │   ├── ExtractionFailed
#   │   ├── NoValidChunks
#   │   └── EmbeddingServiceUnavailable
#   └── QueryError                   → returned to the caller; never retried
#       ├── CollectionNotFound
#       ├── VectorStoreUnavailable
#       └── GenerationFailed
#
# The message of an ingestion error becomes the job's failedReason once all
# attempts are exhausted, so messages are written for end users.
# =============================================================================


class PdfChatError(Exception):
    """Base error for all PDF Chat exceptions."""


class IngestionError(PdfChatError):
    """Raised when a job cannot be ingested. Eligible for queue retry."""


class FileMissing(IngestionError):
    """Raised when the uploaded file is not on disk."""


class ExtractionFailed(IngestionError):
    """Raised when a PDF yields no pages (corrupt, empty or unsupported)."""


class NoValidChunks(IngestionError):
    """Raised when every chunk is below the minimum content length."""


class EmbeddingServiceUnavailable(IngestionError):
    """Raised when the embedding service cannot produce vectors."""


class QueryError(PdfChatError):
    """Raised when a question cannot be answered."""


class CollectionNotFound(QueryError):
    """Raised when no document has ever been ingested into the corpus."""

    def __init__(self, corpus_id: str) -> None:
        super().__init__(f"Collection '{corpus_id}' does not exist")
        self.corpus_id = corpus_id


class VectorStoreUnavailable(QueryError):
    """Raised when the vector database cannot be reached or queried."""


class GenerationFailed(QueryError):
    """Raised when embedding the question or generating the answer fails."""
