"""structlog configuration for the API process and the CLI.

Log lines go to **stderr** so the CLI can keep stdout for its JSON result.
Development gets coloured key/value lines; production (``APP_ENV=production``
or ``json_output=True``) gets one JSON object per event, ready for a log
shipper.

Ingestion code binds ``run_id``, ``chatbot_id`` and ``filename`` with
``logger.bind(...)``; the HTTP middleware puts ``request_id`` into
structlog's context variables.  Both end up on every event below them.

Records from the standard library (uvicorn, httpx, openai) are rendered by
the same processors.  The HTTP client libraries log every request at INFO,
which would drown out the ingestion events, so they are held at WARNING.
"""

import logging
import os
import sys
from typing import Any, TextIO

import structlog

_SERVICE_NAME = "chatbot_kb"
_NOISY_LIBRARIES = ("httpx", "httpcore", "openai", "aiosqlite")


def _add_service(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


def _shared_processors(use_json: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if use_json:
        # JSON needs the traceback as a string field; the console renderer
        # prints exc_info itself.
        processors += [_add_service, structlog.processors.format_exc_info]
    else:
        processors.append(structlog.dev.set_exc_info)
    return processors


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Render JSON even outside production.
        stream: Destination for log lines; defaults to ``sys.stderr``.
    """
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    level = logging.getLevelName(log_level.upper())
    out = stream or sys.stderr

    renderer: structlog.types.Processor
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=out.isatty())

    shared = _shared_processors(use_json)
    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger tagged with *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
