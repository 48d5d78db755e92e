"""Structured logging for the local RAG service, built on structlog.

One processor chain feeds two renderers: a coloured console for local
development and JSON lines for production (``APP_ENV=production`` or
``json_output=True``).  The stdlib root logger is routed through the same
chain, so uvicorn access lines and library warnings share the format.

Context travels in structlog contextvars rather than explicit ``bind``
calls: ``RequestLoggingMiddleware`` binds a ``request_id`` for each HTTP
request and every ingestion task binds its ``file_id``, so all events
emitted underneath carry them.
"""

import logging
import os
import sys

import structlog

# Libraries that log every outbound call at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai", "aiosqlite", "multipart")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _resolve_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR).  Unknown names
            fall back to INFO.
        json_output: Force JSON lines.  Otherwise JSON is used only when
            ``APP_ENV`` is ``"production"``.

    Returns:
        A configured structlog BoundLogger.
    """
    level = _resolve_level(log_level)
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Per-request chatter from the HTTP and database clients only at DEBUG.
    library_level = level if level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger tagged with ``logger_name``.

    Configures logging with defaults first if nothing has yet.
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
