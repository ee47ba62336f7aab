"""Pydantic request/response schemas for the knowledge-base API.

Defines the public contract for the REST endpoints: upload, source
listing, source deletion, and health.

The upload response keeps the camel-case ``sourceId`` key the dashboard
already consumes; the Python attribute is ``source_id`` with an alias.
Request schemas end with "Request", response schemas end with "Response".
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chatbot_kb.models.knowledge import SourceDocument


class UploadResponse(BaseModel):
    """Successful upload: the id of the newly created knowledge source."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    source_id: str = Field(alias="sourceId")


class KnowledgeSourceResponse(BaseModel):
    """One knowledge source as shown in the dashboard."""

    id: str
    chatbot_id: str
    source_type: str
    source_name: str
    pages: int = 0
    size: int = 0
    chunk_count: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_source(cls, source: SourceDocument) -> KnowledgeSourceResponse:
        return cls(
            id=source.id,
            chatbot_id=source.chatbot_id,
            source_type=source.source_type.value,
            source_name=source.source_name,
            pages=source.page_count,
            size=int(source.metadata.get("size", 0)),
            chunk_count=source.expected_chunk_count,
            metadata=source.metadata,
            created_at=source.created_at,
        )


class SourceListResponse(BaseModel):
    """All knowledge sources of one chatbot, newest first."""

    chatbot_id: str
    sources: list[KnowledgeSourceResponse]
    total: int


class DeleteSourceResponse(BaseModel):
    """Result of deleting a knowledge source and its chunks."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    source_id: str = Field(alias="sourceId")


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
