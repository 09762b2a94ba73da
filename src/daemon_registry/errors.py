"""Daemon registry error taxonomy.

Network and reachability failures are never raised from this package; they are
reduced to booleans or result fields where outbound calls return. The errors below
cover the remaining categories: invalid input, store unavailability on write
paths, bad configuration, and documents that cannot be fetched at all.
"""

from __future__ import annotations

from typing import Any


class RegistryError(Exception):
    """Base exception for all daemon registry errors.

    Attributes:
        code: Error code following the registry:<area>/<reason> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class StoreUnavailableError(RegistryError):
    """Raised when the key-value store fails on a write path.

    Read paths degrade instead of raising; write paths (overlay save, rate-limit
    record, activity append) surface this so a lost write is never silent.
    """

    def __init__(
        self, key: str, operation: str, reason: str, details: dict[str, Any] | None = None
    ) -> None:
        message = f"Store unavailable during {operation} of '{key}': {reason}"
        super().__init__(
            code="registry:store/unavailable",
            message=message,
            details={"key": key, "operation": operation, **(details or {})},
        )
        self.key = key
        self.operation = operation
        self.reason = reason


class InvalidDaemonURLError(RegistryError):
    """Raised when a daemon URL cannot be parsed as an absolute http(s) URL."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            code="registry:input/invalid_url",
            message=f"Invalid daemon URL '{url}': {reason}",
            details={"url": url},
        )
        self.url = url
        self.reason = reason


class ConfigurationError(RegistryError):
    """Raised when environment configuration holds an unusable value."""

    def __init__(self, variable: str, value: str, reason: str) -> None:
        super().__init__(
            code="registry:config/invalid",
            message=f"Invalid {variable}={value!r}: {reason}",
            details={"variable": variable, "value": value},
        )
        self.variable = variable
        self.value = value


class DocumentUnavailableError(RegistryError):
    """Raised when a daemon.md document cannot be fetched and nothing is cached."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            code="registry:document/unavailable",
            message=f"Daemon document unavailable at {url}: {reason}",
            details={"url": url},
        )
        self.url = url
        self.reason = reason
