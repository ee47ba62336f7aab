"""Knowledge-base data models.

Defines Pydantic v2 models for the document ingestion pipeline: the
uploaded document, the text pulled out of it, the persisted source and
chunk records, and the transient result handed back to the caller.  All
models are frozen; a record never changes once it has been built.

Ingestion overview:

    1. EXTRACTION: the uploaded bytes are parsed into page texts.
    2. CHUNKING: page texts are split into overlapping ~1000-character spans.
    3. EMBEDDING: each span is converted into a fixed-length vector.
    4. PERSISTENCE: one ``knowledge_sources`` row for the file, then one
       ``knowledge_embeddings`` row per span.

The chat path later filters ``knowledge_embeddings`` by ``chatbot_id`` to
retrieve context for a conversation.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SourceType(str, Enum):
    """Kind of document a knowledge source was built from."""

    PDF = "pdf"
    TEXT = "text"
    URL = "url"  # Reserved; no extractor is registered for it yet.


class IngestionStage(str, Enum):
    """Stages of a single ingestion run."""

    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Pipeline inputs / intermediates
# ---------------------------------------------------------------------------
class DocumentUpload(BaseModel):
    """A raw uploaded document as handed over by the upload handler."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False, description="Raw document bytes.")
    filename: str = Field(description="Original filename supplied by the client.")
    declared_type: SourceType = Field(description="Type the client claims the bytes are.")

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class ExtractedDocument(BaseModel):
    """Ordered page texts pulled out of a document."""

    model_config = ConfigDict(frozen=True)

    pages: list[str] = Field(
        default_factory=list,
        description="One text block per physical page, in document order.",
    )
    page_count: int = Field(default=0, ge=0, description="Number of physical pages.")


class ChunkInput(BaseModel):
    """A chunk ready to be written: its text, its vector and its order."""

    model_config = ConfigDict(frozen=True)

    text: str
    vector: list[float]
    position: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------
class SourceDocument(BaseModel):
    """One ingested file belonging to a chatbot (``knowledge_sources`` row)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque identifier, chosen by the caller or generated by the store.")
    chatbot_id: str
    source_type: SourceType
    source_name: str = Field(description="Original filename.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description='Ingestion facts, e.g. {"pages": 2, "size": 48211, "chunk_count": 5}.',
    )
    created_at: datetime

    @property
    def page_count(self) -> int:
        return int(self.metadata.get("pages", 0))

    @property
    def expected_chunk_count(self) -> int:
        return int(self.metadata.get("chunk_count", 0))


class KnowledgeChunk(BaseModel):
    """One embedded span of a source document (``knowledge_embeddings`` row)."""

    model_config = ConfigDict(frozen=True)

    id: str
    chatbot_id: str = Field(description="Denormalised for retrieval-time filtering.")
    source_id: str
    content: str
    embedding: list[float]
    position: int = Field(ge=0, description="0-based order within the source.")


# ---------------------------------------------------------------------------
# IngestionResult - the caller-facing outcome of one run.
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Outcome of a single :meth:`IngestionService.ingest` call.

    Only ``success`` plus ``source_id`` or ``error`` form the public
    contract (see :meth:`to_public`).  The remaining fields are for logs,
    the CLI and reconciliation tooling.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    source_id: str | None = None
    error: str | None = None
    error_code: str | None = Field(
        default=None,
        description=(
            'Internal failure kind: "extraction_failed", "embedding_failed", '
            '"storage_failed", "orphaned_source" or "internal_error".'
        ),
    )
    orphaned_source_id: str | None = Field(
        default=None,
        description="Source row left behind with zero chunks by a failed chunk write.",
    )
    page_count: int = Field(default=0, ge=0)
    chunk_count: int = Field(default=0, ge=0)
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @classmethod
    def succeeded(cls, source_id: str, **extra: Any) -> IngestionResult:
        return cls(success=True, source_id=source_id, **extra)

    @classmethod
    def failed(cls, error: str, error_code: str, **extra: Any) -> IngestionResult:
        return cls(success=False, error=error, error_code=error_code, **extra)

    def to_public(self) -> dict[str, Any]:
        """Return the caller contract: ``{success, sourceId}`` or ``{success, error}``."""
        if self.success:
            return {"success": True, "sourceId": self.source_id}
        return {"success": False, "error": self.error}
