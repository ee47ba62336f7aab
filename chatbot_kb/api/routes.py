"""FastAPI API routes for the knowledge-base ingestion service.

Provides REST endpoints for document upload, source listing, source
deletion and health checks.  Service dependencies are resolved from
``app.state`` via FastAPI's ``Depends`` using the ``Annotated`` pattern.

    Endpoint                                    Method  Description
    /api/v1/knowledge-base/upload               POST    Upload a document -> ingest
    /api/v1/knowledge-base/{chatbot_id}/sources GET     List a chatbot's sources
    /api/v1/knowledge-base/sources/{source_id}  DELETE  Delete a source + chunks
    /api/v1/health                              GET     Health + provider status

Authentication of the caller is handled in front of this service; the
routes trust the ``chatbotId`` they are given.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from chatbot_kb import __version__
from chatbot_kb.api.schemas import (
    DeleteSourceResponse,
    ErrorResponse,
    HealthResponse,
    KnowledgeSourceResponse,
    SourceListResponse,
    UploadResponse,
)
from chatbot_kb.config.settings import Settings
from chatbot_kb.interfaces.knowledge_store import IKnowledgeStore
from chatbot_kb.models.knowledge import DocumentUpload, SourceType
from chatbot_kb.services.ingestion.ingestion_service import IngestionService
from chatbot_kb.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# All routes in this file are prefixed with /api/v1.
router = APIRouter(prefix="/api/v1")

# --- Upload validation constants ---
_CONTENT_TYPES: dict[str, SourceType] = {
    "application/pdf": SourceType.PDF,
    "application/x-pdf": SourceType.PDF,
    "text/plain": SourceType.TEXT,
    "text/markdown": SourceType.TEXT,
}
# Used only when the client sends no specific content type.
_EXTENSIONS: dict[str, SourceType] = {
    ".pdf": SourceType.PDF,
    ".txt": SourceType.TEXT,
    ".md": SourceType.TEXT,
}
_GENERIC_CONTENT_TYPES = frozenset({"", "application/octet-stream"})

# Read uploads in 64 KB increments so oversized files are rejected early
# without buffering the entire payload into memory.
_UPLOAD_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Dependency injection helpers - resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_ingestion_service(request: Request) -> IngestionService:
    """Return the ingestion orchestrator from application state."""
    return request.app.state.ingestion_service


def _get_knowledge_store(request: Request) -> IKnowledgeStore:
    """Return the knowledge store from application state."""
    return request.app.state.knowledge_store


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


IngestionServiceDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
KnowledgeStoreDep = Annotated[IKnowledgeStore, Depends(_get_knowledge_store)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(exclude_none=True),
    )


def _resolve_source_type(content_type: str, filename: str) -> SourceType | None:
    """Map an upload's content type (or, failing that, extension) to a source type."""
    base_type = content_type.split(";", 1)[0].strip().lower()
    if base_type in _CONTENT_TYPES:
        return _CONTENT_TYPES[base_type]
    if base_type in _GENERIC_CONTENT_TYPES:
        return _EXTENSIONS.get(PurePath(filename).suffix.lower())
    return None


# ---------------------------------------------------------------------------
# Knowledge base
# ---------------------------------------------------------------------------


@router.post(
    "/knowledge-base/upload",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Upload a document into a chatbot's knowledge base",
)
async def upload_document(
    service: IngestionServiceDep,
    settings: SettingsDep,
    file: Annotated[UploadFile | None, File()] = None,
    chatbot_id: Annotated[str | None, Form(alias="chatbotId")] = None,
) -> Any:
    """Accept a PDF or text file, ingest it, and return the new source id."""
    if file is None or not chatbot_id or not chatbot_id.strip():
        return _error(400, "File and chatbotId are required")

    filename = file.filename or "upload"
    content_type = file.content_type or ""
    source_type = _resolve_source_type(content_type, filename)
    if source_type is None or not service.supports(source_type):
        return _error(415, f"Unsupported file type: {content_type or 'unknown'}")

    # --- Stream upload in chunks - reject oversized files early -------
    max_bytes = settings.max_upload_bytes
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            _logger.warning("upload_too_large", filename=filename, limit=max_bytes)
            return _error(413, f"File too large. Maximum: {max_bytes} bytes.")
        chunks.append(chunk)
    data = b"".join(chunks)
    del chunks

    document = DocumentUpload(data=data, filename=filename, declared_type=source_type)
    result = await service.ingest(document, chatbot_id.strip())

    if not result.success:
        return _error(500, result.error or "Failed to process the document")
    return UploadResponse(source_id=result.source_id)


@router.get(
    "/knowledge-base/{chatbot_id}/sources",
    response_model=SourceListResponse,
    summary="List the knowledge sources of a chatbot",
)
async def list_sources(chatbot_id: str, store: KnowledgeStoreDep) -> SourceListResponse:
    sources = await store.list_sources(chatbot_id)
    return SourceListResponse(
        chatbot_id=chatbot_id,
        sources=[KnowledgeSourceResponse.from_source(s) for s in sources],
        total=len(sources),
    )


@router.delete(
    "/knowledge-base/sources/{source_id}",
    response_model=DeleteSourceResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a knowledge source and all of its chunks",
)
async def delete_source(source_id: str, store: KnowledgeStoreDep) -> Any:
    deleted = await store.delete_source(source_id)
    if not deleted:
        return _error(404, f"No knowledge source: {source_id}")
    _logger.info("knowledge_source_deleted_via_api", source_id=source_id)
    return DeleteSourceResponse(source_id=source_id)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Report whether uploads can currently succeed.

    ``degraded`` means sources can be listed and deleted but new uploads
    fail at the embedding stage.
    """
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    embedding_ok = bool(providers.get("embedding", False))
    store_ok = bool(providers.get("knowledge_store", False))

    if embedding_ok and store_ok:
        status = "healthy"
    elif store_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=__version__,
        providers=providers,
    )
