"""Shared logging utilities for structured logging across the application.

Every module obtains its logger through ``get_logger(__name__)`` and emits
snake_case events with keyword context, e.g.
``logger.info("video_processed", video_id="abc12345678", chunks=3)``.
"""

import logging
import os
import sys

import structlog

_configured = False


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Log level name. Defaults to the LOG_LEVEL environment variable
            or INFO.
        fmt: "json" (default) or "console". Defaults to LOG_FORMAT.
    """
    global _configured

    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    renderer_name = (fmt or os.getenv("LOG_FORMAT") or "json").lower()

    renderer: structlog.types.Processor
    if renderer_name == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured structured logger instance.

    Logging is configured lazily on the first call in a process.

    Args:
        name: Logger name (typically __name__ from the calling module).

    Returns:
        Configured structlog logger instance ready for use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("index_loaded", segments=42)
        >>> logger.exception("index_persist_failed", path="faiss_index/x.faiss")
    """
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)
