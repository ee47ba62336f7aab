"""HTTP middleware for the knowledge-base API.

``main.create_app`` registers ``ErrorHandlingMiddleware`` before
``RequestLoggingMiddleware``.  Starlette runs the last registered middleware
outermost, so a request passes

    RequestLogging -> ErrorHandling -> route

and the access log line records the status produced by the error handler.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from chatbot_kb.api.schemas import ErrorResponse
from chatbot_kb.utils.errors import (
    ConfigurationError,
    EmbeddingServiceError,
    KnowledgeBaseError,
    StorageError,
)
from chatbot_kb.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# (status, public detail) per error family; the first match wins.
_ERROR_STATUS: tuple[tuple[type[KnowledgeBaseError], int, str], ...] = (
    (StorageError, 503, "The knowledge store is temporarily unavailable"),
    (EmbeddingServiceError, 502, "The embedding service could not complete the request"),
    (ConfigurationError, 503, "The knowledge base is not configured"),
)
_DEFAULT_STATUS = 500
_DEFAULT_DETAIL = "The knowledge base could not complete the request"


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Allow the dashboard origin(s) to call the upload and source routes.

    Parameters
    ----------
    app:
        Application to register the middleware on.
    allowed_origins:
        Origins from ``Settings.get_cors_origins()``.  Empty or ``None``
        means any origin, in which case cookies are not allowed.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One ``http_request`` event per request, tagged with a request id.

    The id is taken from an incoming ``X-Request-ID`` header when present,
    bound into structlog's context for everything logged while the request
    runs (including the ingestion run), and echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        started = time.perf_counter()
        status = 500
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            log = _logger.warning if status >= 400 else _logger.info
            log(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status,
                content_length=request.headers.get("content-length"),
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn a ``KnowledgeBaseError`` escaping a route into a JSON error.

    The body names the error class and a fixed detail for its family;
    the message and provider, which may carry paths or upstream error
    text, only go to the log.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except KnowledgeBaseError as exc:
            status, detail = _status_for(exc)
            _logger.error(
                "unhandled_knowledge_base_error",
                error_type=type(exc).__name__,
                error=exc.message,
                provider=exc.provider_name,
                path=request.url.path,
                status=status,
            )
            return JSONResponse(
                status_code=status,
                content=ErrorResponse(error=type(exc).__name__, detail=detail).model_dump(),
            )


def _status_for(exc: KnowledgeBaseError) -> tuple[int, str]:
    for error_type, status, detail in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status, detail
    return _DEFAULT_STATUS, _DEFAULT_DETAIL
