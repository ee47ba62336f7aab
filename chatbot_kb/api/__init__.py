"""Knowledge-base API layer - routes, schemas, and middleware."""

from chatbot_kb.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from chatbot_kb.api.routes import router
from chatbot_kb.api.schemas import (
    ErrorResponse,
    HealthResponse,
    SourceListResponse,
    UploadResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ErrorResponse",
    "HealthResponse",
    "SourceListResponse",
    "UploadResponse",
]
