"""Exceptions raised inside the knowledge-base ingestion service.

Every error names the collaborator that failed (``provider_name``, e.g.
``"openai_embedding"``, ``"sqlite_knowledge_store"``, ``"pymupdf"``) and
the ingestion failure kind it maps to (``error_code``)::

    KnowledgeBaseError              internal_error
    +-- ExtractionError             extraction_failed
    +-- EmbeddingServiceError       embedding_failed
    |   +-- RateLimitError          embedding_failed (retried first)
    +-- StorageError                storage_failed
    |   +-- StorageTimeoutError     storage_failed (outcome unknown)
    +-- ConfigurationError          internal_error

None of these messages reach an API caller; the orchestrator and the HTTP
middleware replace them with fixed public text.
"""

from __future__ import annotations


class KnowledgeBaseError(Exception):
    """Base class; ``str(exc)`` reads ``[provider] message`` when a provider is known."""

    default_message = "Knowledge base operation failed"
    error_code = "internal_error"

    def __init__(self, message: str | None = None, provider_name: str | None = None) -> None:
        self.message = message or self.default_message
        self.provider_name = provider_name
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.provider_name:
            return f"[{self.provider_name}] {self.message}"
        return self.message


class ExtractionError(KnowledgeBaseError):
    """The uploaded bytes could not be read as their declared type.

    Fatal to the run: a document is ingested completely or not at all.
    """

    default_message = "Document text extraction failed"
    error_code = "extraction_failed"


class EmbeddingServiceError(KnowledgeBaseError):
    """Transport, authentication, timeout or malformed-response failure."""

    default_message = "Embedding service call failed"
    error_code = "embedding_failed"


class RateLimitError(EmbeddingServiceError):
    """The embedding service asked us to slow down.

    The only retryable error.  ``EmbeddingGenerator`` backs off and tries
    again, and converts it to a plain :class:`EmbeddingServiceError` once
    its attempts run out.
    """

    default_message = "Rate limit exceeded"


class StorageError(KnowledgeBaseError):
    default_message = "Knowledge store operation failed"
    error_code = "storage_failed"


class StorageTimeoutError(StorageError):
    """A store call did not finish in time.

    Cancelling the await does not stop a write already running on the
    driver's thread, so the write may still have been committed.
    """

    default_message = "Knowledge store call timed out"


class ConfigurationError(KnowledgeBaseError):
    """Missing or inconsistent settings, e.g. no embedding API key."""

    default_message = "Invalid or missing configuration"
