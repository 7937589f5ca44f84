"""
hello_service/core/logging.py
Structured logging setup using structlog
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger

from .config import Settings, get_settings

ROOT_LOGGER_NAME = "hello_service"


def setup_logging(settings: Optional[Settings] = None) -> BoundLogger:
    """
    Configure structured logging for the service.

    uvicorn's loggers are left unconfigured so they propagate into the same
    stdlib root handler.

    Args:
        settings: Settings to read LOG_LEVEL / LOG_FORMAT from
            (defaults to the global settings)

    Returns:
        Configured root logger
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.LOG_LEVEL)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    logging.getLogger().setLevel(level)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger(ROOT_LOGGER_NAME)
    logger.debug(
        "logging_configured",
        level=settings.LOG_LEVEL,
        format=settings.LOG_FORMAT,
    )
    return logger


def get_logger(name: Optional[str] = None) -> BoundLogger:
    """
    Get a logger instance

    Args:
        name: Logger name (e.g., "lifecycle", "routes")

    Returns:
        Configured structlog logger
    """
    if name:
        return structlog.get_logger(f"{ROOT_LOGGER_NAME}.{name}")
    return structlog.get_logger(ROOT_LOGGER_NAME)


# ============================================================================
# Context Manager for Request Logging
# ============================================================================

class LogContext:
    """
    Context manager for adding request-specific context to logs

    Usage:
        with LogContext(method="GET", path="/health"):
            logger.info("request_timed_out")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._tokens = {}

    def __enter__(self):
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        structlog.contextvars.reset_contextvars(**self._tokens)
        return False


__all__ = ["setup_logging", "get_logger", "LogContext", "ROOT_LOGGER_NAME"]
