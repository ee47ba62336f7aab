"""Orchestrator for the document-to-knowledge-base ingestion pipeline.

Pipeline stages: **extract -> chunk -> embed -> persist**.

The :class:`IngestionService` implements the **Orchestrator pattern**: it
coordinates four collaborators (content extractors, chunker, embedding
generator, knowledge store) without any of them knowing about each other.
Every run follows the same flow:

    1. IContentExtractor -- raw bytes to page texts (worker thread)
    2. TextChunker -- page texts to ~1000-character overlapping windows
    3. EmbeddingGenerator -- one vector per window, order preserved
    4. IKnowledgeStore -- one source row, then every chunk row

All dependencies are injected via constructor (Dependency Injection), so
providers can be swapped (e.g. SQLite -> Postgres) without changing this
class.

Consistency: nothing is written before every vector exists, so failures
during extraction, chunking or embedding leave no trace.  The store offers
no transaction spanning the source row and its chunks; when the chunk
write fails after the source row was committed, the run reports the
leftover row as ``orphaned_source`` instead of hiding it.  The source id is
generated here before the row is written, so a ``record_source`` call that
times out (and may still commit on the driver's thread) is reported the same
way, with the id the row would carry.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Awaitable, Iterable
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from chatbot_kb.models.knowledge import (
    ChunkInput,
    DocumentUpload,
    ExtractedDocument,
    IngestionResult,
    IngestionStage,
    SourceType,
)
from chatbot_kb.utils.errors import (
    EmbeddingServiceError,
    ExtractionError,
    StorageError,
    StorageTimeoutError,
)

if TYPE_CHECKING:
    from chatbot_kb.interfaces.content_extractor import IContentExtractor
    from chatbot_kb.interfaces.knowledge_store import IKnowledgeStore
    from chatbot_kb.services.ingestion.chunker import TextChunker
    from chatbot_kb.services.ingestion.embedding_generator import EmbeddingGenerator

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")

# Public, stage-specific failure messages.  Internal detail stays in the logs.
EXTRACTION_FAILED_MESSAGE = "Failed to extract text from the document"
EMBEDDING_FAILED_MESSAGE = "Failed to generate embeddings for the document"
STORAGE_FAILED_MESSAGE = "Failed to store the document"
ORPHANED_SOURCE_MESSAGE = "Failed to store the document contents"
INTERNAL_ERROR_MESSAGE = "Failed to process the document"


class IngestionService:
    """Orchestrates one ingestion run per :meth:`ingest` call.

    The service holds no per-run state, so any number of runs (including
    several for the same chatbot) may execute concurrently.

    Parameters
    ----------
    extractors:
        Content extractors; each registers itself for the
        :class:`SourceType` returned by ``supported_type()``.
    chunker:
        Splits page texts into overlapping windows.
    embedding_generator:
        Produces one vector per chunk with batching and retry policy.
    knowledge_store:
        Durable storage for source documents and chunks.
    storage_timeout_seconds:
        Upper bound for each store call; a timeout counts as a storage
        failure.
    """

    def __init__(
        self,
        extractors: Iterable[IContentExtractor],
        chunker: TextChunker,
        embedding_generator: EmbeddingGenerator,
        knowledge_store: IKnowledgeStore,
        storage_timeout_seconds: float = 15.0,
    ) -> None:
        self._extractors: dict[SourceType, IContentExtractor] = {
            e.supported_type(): e for e in extractors
        }
        self._chunker = chunker
        self._embedding_generator = embedding_generator
        self._knowledge_store = knowledge_store
        self._storage_timeout = storage_timeout_seconds

    def supports(self, source_type: SourceType) -> bool:
        """Return ``True`` if an extractor is registered for *source_type*."""
        return source_type in self._extractors

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(self, document: DocumentUpload, chatbot_id: str) -> IngestionResult:
        """Run the full pipeline for *document* on behalf of *chatbot_id*.

        Returns
        -------
        IngestionResult
            Success with the new source id, or a failure carrying a fixed
            public message plus an internal ``error_code``.  Errors are
            never raised to the caller, with one exception:
            :class:`asyncio.CancelledError` is logged and re-raised.  When
            the cancellation arrives during extraction, the worker thread
            cannot be interrupted; ``ingest`` waits for it to finish (and
            remove any scoped temp file) before re-raising.
        """
        run_log = logger.bind(
            run_id=uuid.uuid4().hex[:12],
            chatbot_id=chatbot_id,
            filename=document.filename,
            source_type=document.declared_type.value,
        )
        start = time.monotonic()
        stage = IngestionStage.EXTRACTING
        source_id: str | None = None
        pending_source_id: str | None = None
        page_count = 0
        chunk_count = 0

        def _elapsed() -> float:
            return round(time.monotonic() - start, 3)

        run_log.info("ingestion_started", size=document.size_bytes)

        try:
            # 1. Extract ------------------------------------------------
            run_log.info("ingestion_stage", stage=stage.value)
            extracted = await self._extract(document)
            page_count = extracted.page_count

            # 2. Chunk --------------------------------------------------
            stage = IngestionStage.CHUNKING
            run_log.info("ingestion_stage", stage=stage.value, pages=page_count)
            chunks = self._chunker.split(extracted.pages)
            chunk_count = len(chunks)
            if not chunks:
                run_log.warning("ingestion_no_text", pages=page_count)

            # 3. Embed --------------------------------------------------
            stage = IngestionStage.EMBEDDING
            run_log.info(
                "ingestion_stage",
                stage=stage.value,
                chunks=chunk_count,
                dimension=self._embedding_generator.get_dimension(),
            )
            vectors = await self._embedding_generator.generate(chunks)

            # 4. Persist ------------------------------------------------
            stage = IngestionStage.PERSISTING
            run_log.info("ingestion_stage", stage=stage.value)
            metadata: dict[str, Any] = {
                "pages": page_count,
                "size": document.size_bytes,
                "chunk_count": chunk_count,
            }
            pending_source_id = str(uuid.uuid4())
            source_id = await self._with_storage_timeout(
                self._knowledge_store.record_source(
                    chatbot_id,
                    document.declared_type,
                    document.filename,
                    metadata,
                    source_id=pending_source_id,
                ),
                operation="record_source",
            )
            if chunks:
                chunk_inputs = [
                    ChunkInput(text=text, vector=vector, position=position)
                    for position, (text, vector) in enumerate(zip(chunks, vectors))
                ]
                await self._with_storage_timeout(
                    self._knowledge_store.record_chunks(chatbot_id, source_id, chunk_inputs),
                    operation="record_chunks",
                )

        except asyncio.CancelledError:
            run_log.warning(
                "ingestion_cancelled",
                stage=stage.value,
                source_id=source_id or pending_source_id,
                duration_seconds=_elapsed(),
            )
            raise

        except ExtractionError as exc:
            run_log.error(
                "ingestion_failed",
                stage=IngestionStage.FAILED.value,
                failed_stage=stage.value,
                error_code=exc.error_code,
                error=str(exc),
                provider=exc.provider_name,
            )
            return IngestionResult.failed(
                EXTRACTION_FAILED_MESSAGE,
                exc.error_code,
                duration_seconds=_elapsed(),
            )

        except EmbeddingServiceError as exc:
            run_log.error(
                "ingestion_failed",
                stage=IngestionStage.FAILED.value,
                failed_stage=stage.value,
                error_code=exc.error_code,
                error=str(exc),
                provider=exc.provider_name,
                chunks=chunk_count,
            )
            return IngestionResult.failed(
                EMBEDDING_FAILED_MESSAGE,
                exc.error_code,
                page_count=page_count,
                chunk_count=chunk_count,
                duration_seconds=_elapsed(),
            )

        except StorageError as exc:
            leftover_id = source_id
            if leftover_id is None and isinstance(exc, StorageTimeoutError):
                # The source row may have been committed after the timeout fired.
                leftover_id = pending_source_id
            if leftover_id is not None:
                return self._orphaned(run_log, leftover_id, exc, page_count, chunk_count, _elapsed())
            run_log.error(
                "ingestion_failed",
                stage=IngestionStage.FAILED.value,
                failed_stage=stage.value,
                error_code=exc.error_code,
                error=str(exc),
                provider=exc.provider_name,
            )
            return IngestionResult.failed(
                STORAGE_FAILED_MESSAGE,
                exc.error_code,
                page_count=page_count,
                chunk_count=chunk_count,
                duration_seconds=_elapsed(),
            )

        except Exception as exc:
            if source_id is not None:
                return self._orphaned(run_log, source_id, exc, page_count, chunk_count, _elapsed())
            run_log.exception(
                "ingestion_failed",
                stage=IngestionStage.FAILED.value,
                failed_stage=stage.value,
                error_code="internal_error",
                error=str(exc),
            )
            return IngestionResult.failed(
                INTERNAL_ERROR_MESSAGE,
                "internal_error",
                page_count=page_count,
                chunk_count=chunk_count,
                duration_seconds=_elapsed(),
            )

        run_log.info(
            "ingestion_completed",
            stage=IngestionStage.DONE.value,
            source_id=source_id,
            pages=page_count,
            chunks=chunk_count,
            duration_seconds=_elapsed(),
        )
        return IngestionResult.succeeded(
            source_id,
            page_count=page_count,
            chunk_count=chunk_count,
            duration_seconds=_elapsed(),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _extract(self, document: DocumentUpload) -> ExtractedDocument:
        extractor = self._extractors.get(document.declared_type)
        if extractor is None:
            raise ExtractionError(
                message=f"No extractor registered for source type {document.declared_type.value!r}",
            )
        # Parsing blocks; keep it off the event loop.
        worker = asyncio.ensure_future(
            asyncio.to_thread(extractor.extract, document.data, document.filename)
        )
        try:
            return await asyncio.shield(worker)
        except asyncio.CancelledError:
            # The thread cannot be interrupted; let it finish and clean up first.
            await asyncio.wait({worker})
            if not worker.cancelled() and worker.exception() is not None:
                logger.info(
                    "extraction_finished_after_cancel",
                    filename=document.filename,
                    error=str(worker.exception()),
                )
            raise

    async def _with_storage_timeout(self, call: Awaitable[_T], operation: str) -> _T:
        try:
            return await asyncio.wait_for(call, timeout=self._storage_timeout)
        except asyncio.TimeoutError as exc:
            raise StorageTimeoutError(
                message=f"{operation} timed out after {self._storage_timeout}s",
                provider_name=self._knowledge_store.get_provider_name(),
            ) from exc

    @staticmethod
    def _orphaned(
        run_log: Any,
        source_id: str,
        exc: Exception,
        page_count: int,
        chunk_count: int,
        duration: float,
    ) -> IngestionResult:
        """Report a source row that may be committed without its chunks."""
        run_log.error(
            "ingestion_orphaned_source",
            stage=IngestionStage.FAILED.value,
            failed_stage=IngestionStage.PERSISTING.value,
            error_code="orphaned_source",
            source_id=source_id,
            expected_chunks=chunk_count,
            error=str(exc),
        )
        return IngestionResult.failed(
            ORPHANED_SOURCE_MESSAGE,
            "orphaned_source",
            orphaned_source_id=source_id,
            page_count=page_count,
            chunk_count=chunk_count,
            duration_seconds=duration,
        )
