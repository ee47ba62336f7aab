"""ASGI entry point: ``uvicorn chatbot_kb.main:app``.

Settings come from the environment / ``.env``.  Every collaborator of the
ingestion pipeline is built once per process in :func:`_build_all` and
published on ``app.state``, where the route dependencies pick them up.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from chatbot_kb import __version__
from chatbot_kb.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from chatbot_kb.api.routes import router as api_router
from chatbot_kb.config.settings import Settings
from chatbot_kb.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from chatbot_kb.providers.extraction.pdf_extractor import PDFContentExtractor
from chatbot_kb.providers.extraction.text_extractor import PlainTextContentExtractor
from chatbot_kb.providers.store.sqlite_knowledge_store import SQLiteKnowledgeStore
from chatbot_kb.services.ingestion.chunker import TextChunker
from chatbot_kb.services.ingestion.embedding_generator import EmbeddingGenerator
from chatbot_kb.services.ingestion.ingestion_service import IngestionService
from chatbot_kb.utils.logging import configure_logging, get_logger

settings = Settings()
configure_logging(log_level=settings.log_level, json_output=settings.app_env == "production")
_logger: structlog.BoundLogger = get_logger(__name__)


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Assemble the pipeline: extractors, chunker, embeddings, store, service.

    The keys of the returned dict become attributes of ``app.state``;
    ``provider_registry`` is what ``/api/v1/health`` reports.
    """
    # One connection pool for every embedding call in this process.
    http_client = httpx.AsyncClient(timeout=app_settings.embedding_timeout_seconds)

    embedding_provider = OpenAIEmbeddingProvider(settings=app_settings, http_client=http_client)
    knowledge_store = SQLiteKnowledgeStore(db_path=app_settings.knowledge_db_path)
    extractors = [
        PDFContentExtractor(temp_dir=app_settings.ingest_temp_dir),
        PlainTextContentExtractor(),
    ]

    ingestion_service = IngestionService(
        extractors=extractors,
        chunker=TextChunker(
            chunk_size=app_settings.chunk_size,
            overlap=app_settings.chunk_overlap,
            boundary_window=app_settings.chunk_boundary_window,
        ),
        embedding_generator=EmbeddingGenerator(
            provider=embedding_provider,
            batch_size=app_settings.embedding_batch_size,
            timeout_seconds=app_settings.embedding_timeout_seconds,
            max_attempts=app_settings.embedding_max_attempts,
            backoff_base=app_settings.embedding_backoff_base_seconds,
            backoff_max=app_settings.embedding_backoff_max_seconds,
        ),
        knowledge_store=knowledge_store,
        storage_timeout_seconds=app_settings.storage_timeout_seconds,
    )

    return {
        "settings": app_settings,
        "http_client": http_client,
        "embedding_provider": embedding_provider,
        "knowledge_store": knowledge_store,
        "ingestion_service": ingestion_service,
        "provider_registry": {
            "embedding": embedding_provider.is_available(),
            "embedding_provider": embedding_provider.get_provider_name(),
            "knowledge_store": True,
            "extractors": sorted(e.supported_type().value for e in extractors),
        },
    }


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    app_settings: Settings = getattr(application.state, "settings", None) or settings
    components = _build_all(app_settings)
    for name, component in components.items():
        setattr(application.state, name, component)
    http_client: httpx.AsyncClient = components["http_client"]

    try:
        # Tables must exist before the first upload is accepted.
        await components["knowledge_store"].initialize()

        registry = components["provider_registry"]
        if not registry["embedding"]:
            _logger.warning(
                "embedding_provider_unavailable",
                provider=registry["embedding_provider"],
                hint="set OPENAI_API_KEY; uploads fail at the embedding stage until then",
            )
        _logger.info(
            "app_startup",
            version=__version__,
            environment=app_settings.app_env,
            db_path=app_settings.knowledge_db_path,
            extractors=registry["extractors"],
            max_upload_bytes=app_settings.max_upload_bytes,
        )

        yield
    finally:
        await http_client.aclose()
        _logger.info("app_shutdown")


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Return the FastAPI app; pass *app_settings* to override the environment."""
    app_settings = app_settings or settings
    application = FastAPI(
        title="Chatbot Knowledge Base API",
        version=__version__,
        description=(
            "Upload PDF or text documents into a chatbot's knowledge base. "
            "Each document is split into overlapping chunks, embedded and "
            "stored for retrieval-augmented chat."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings

    # Registered inner-first; see chatbot_kb.api.middleware.
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_settings.get_cors_origins())

    application.include_router(api_router)
    return application


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "chatbot_kb.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "development",
    )
