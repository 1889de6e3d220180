"""Structured logging configuration for wsbridge.

This module configures structlog for structured logging with support for
both development (console) and production (JSON) output formats.

Environment Variables:
    WSBRIDGE_LOG_FORMAT: Set to "json" for JSON output, "console" for colored output
    WSBRIDGE_LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR)
    WSBRIDGE_SERVICE_NAME: Service name to include in logs

Example:
    >>> from wsbridge.observability.logging import get_logger, configure_logging
    >>>
    >>> # Configure logging (typically done once at startup)
    >>> configure_logging(log_format="json", log_level="INFO")
    >>>
    >>> # Get a logger and use it
    >>> logger = get_logger("wsbridge.transport.session")
    >>> logger.info("wsbridge.session.opened", peer="127.0.0.1:51000")
"""

import logging
import os
import sys

import structlog
from structlog.typing import Processor

# Default configuration
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"
LOG_FORMATS = ("console", "json")
DEFAULT_SERVICE_NAME = "wsbridge"

# Environment variable names
ENV_LOG_FORMAT = "WSBRIDGE_LOG_FORMAT"
ENV_LOG_LEVEL = "WSBRIDGE_LOG_LEVEL"
ENV_SERVICE_NAME = "WSBRIDGE_SERVICE_NAME"

# Module-level flag to track if logging has been configured
_logging_configured = False


def _get_log_level() -> str:
    """Get log level from environment or use default."""
    return os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()


def _get_log_format() -> str:
    """Get log format from environment or use default."""
    return os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT).lower()


def _get_service_name() -> str:
    return os.environ.get(ENV_SERVICE_NAME, DEFAULT_SERVICE_NAME)


def _get_shared_processors() -> list[Processor]:
    """Get shared processors for all log formats."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _get_renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    service_name: str | None = None,
    force: bool = False,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_format: Output format - "json" or "console". Defaults to env var or "console"
        log_level: Minimum log level. Defaults to env var or "INFO"
        service_name: Service name for log context. Defaults to env var or "wsbridge"
        force: If True, reconfigure even if already configured

    Raises:
        ValueError: If log_format is not one of LOG_FORMATS, or log_level is not a
            standard logging level name
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    log_format = (log_format or _get_log_format()).lower()
    log_level = (log_level or _get_log_level()).upper()
    service_name = service_name or _get_service_name()

    if log_format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {log_format}")
    level = logging.getLevelName(log_level)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    shared_processors = _get_shared_processors()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Route stdlib records (websockets, httpx) through the same renderer
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _get_renderer(log_format),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    structlog.contextvars.bind_contextvars(service=service_name)

    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given name.

    If logging has not been configured, it will be configured with default
    settings.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("wsbridge.event", key="value")
        >>>
        >>> # With bound context
        >>> logger = logger.bind(peer="127.0.0.1:51000")
        >>> logger.info("wsbridge.session.closed")  # peer automatically included
    """
    if not _logging_configured:
        configure_logging()

    return structlog.stdlib.get_logger(name)
