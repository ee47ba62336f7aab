"""Knowledge-base domain models - re-exports all public model classes."""

from __future__ import annotations

from chatbot_kb.models.knowledge import (
    ChunkInput,
    DocumentUpload,
    ExtractedDocument,
    IngestionResult,
    IngestionStage,
    KnowledgeChunk,
    SourceDocument,
    SourceType,
)

__all__ = [
    "ChunkInput",
    "DocumentUpload",
    "ExtractedDocument",
    "IngestionResult",
    "IngestionStage",
    "KnowledgeChunk",
    "SourceDocument",
    "SourceType",
]
