"""Abstract base class for knowledge-store providers.

Defines the contract for durably storing a chatbot's source documents and
their embedded chunks.  Implementations may wrap SQLite (local), Postgres
with pgvector, or a hosted backend such as Supabase.  The ingestion service
only depends on this interface.

Consistency contract: :meth:`IKnowledgeStore.record_chunks` is only called
after :meth:`IKnowledgeStore.record_source` succeeded for that source id.
The store does not offer a transaction spanning both calls, so a failed
chunk write can leave a source row with zero chunks.  Such rows are found
with :meth:`IKnowledgeStore.find_orphaned_sources`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from chatbot_kb.models.knowledge import ChunkInput, KnowledgeChunk, SourceDocument, SourceType


# Concrete implementation: SQLiteKnowledgeStore (chatbot_kb/providers/store/)
class IKnowledgeStore(ABC):
    """Contract for knowledge-base persistence.

    All operations are async to support network-backed stores without
    blocking the event loop.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    async def record_source(
        self,
        chatbot_id: str,
        source_type: SourceType,
        filename: str,
        metadata: dict[str, Any],
        source_id: str | None = None,
    ) -> str:
        """Durably create a source-document row and return its id.

        Parameters
        ----------
        chatbot_id:
            Owning chatbot.
        source_type:
            Kind of document the source was built from.
        filename:
            Original filename.
        metadata:
            Ingestion facts (``pages``, ``size``, ``chunk_count``).
        source_id:
            Id for the new row; one is generated when omitted.  Callers that
            pass it know the id even when the call times out.

        Raises
        ------
        chatbot_kb.utils.errors.StorageError
            On constraint violation or connectivity failure.
        """

    @abstractmethod
    async def record_chunks(
        self,
        chatbot_id: str,
        source_id: str,
        chunks: list[ChunkInput],
    ) -> None:
        """Create every chunk row for *source_id* in one logical operation.

        Either all rows are written or none are.

        Raises
        ------
        chatbot_kb.utils.errors.StorageError
            If any chunk write fails.
        """

    @abstractmethod
    async def get_source(self, source_id: str) -> SourceDocument | None:
        """Return the source with *source_id*, or ``None``."""

    @abstractmethod
    async def list_sources(self, chatbot_id: str | None = None) -> list[SourceDocument]:
        """Return sources, newest first, optionally restricted to one chatbot."""

    @abstractmethod
    async def get_chunks(self, source_id: str) -> list[KnowledgeChunk]:
        """Return the chunks of *source_id* ordered by position."""

    @abstractmethod
    async def count_chunks(
        self,
        chatbot_id: str | None = None,
        source_id: str | None = None,
    ) -> int:
        """Count chunk rows, optionally filtered by chatbot and/or source."""

    @abstractmethod
    async def delete_source(self, source_id: str) -> bool:
        """Delete a source and, by cascade, its chunks.

        Returns ``True`` if a source row was deleted.
        """

    @abstractmethod
    async def find_orphaned_sources(self, chatbot_id: str | None = None) -> list[SourceDocument]:
        """Return sources that expected chunks but have none stored."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite_knowledge_store"``."""
