"""Utility modules for the knowledge-base service.

- **errors** -- Exception hierarchy rooted at KnowledgeBaseError; each
  pipeline stage raises its own subclass.
- **logging** -- structlog setup: coloured console output in development,
  structured JSON in production.
- **temp_files** -- Collision-resistant scoped temp files for parsers that
  need a path on disk.
"""

from chatbot_kb.utils.errors import (
    ConfigurationError,
    EmbeddingServiceError,
    ExtractionError,
    KnowledgeBaseError,
    RateLimitError,
    StorageError,
)
from chatbot_kb.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "EmbeddingServiceError",
    "ExtractionError",
    "KnowledgeBaseError",
    "RateLimitError",
    "StorageError",
    "configure_logging",
    "get_logger",
]
