"""Observability module for wsbridge.

Structured logging with JSON output for production and colored console
output for development.

Example:
    >>> from wsbridge.observability import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info("wsbridge.listener.started", url="ws://0.0.0.0:45278")
"""

from wsbridge.observability.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
