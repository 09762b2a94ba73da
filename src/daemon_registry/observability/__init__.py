"""Observability helpers for the daemon registry.

Structured logging (structlog) to stderr, with console output for development
and JSON output for production.

Example:
    >>> from daemon_registry.observability import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info("registry.health.checked", daemon_url="https://x.example.com/", status="mcp")
"""

from daemon_registry.observability.logging import (
    LogSettings,
    configure_logging,
    get_logger,
    is_debug_mode,
    redact_sensitive,
    request_context,
    sanitize_for_logging,
)

__all__ = [
    "LogSettings",
    "configure_logging",
    "get_logger",
    "is_debug_mode",
    "redact_sensitive",
    "request_context",
    "sanitize_for_logging",
]
