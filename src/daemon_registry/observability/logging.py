"""Structured logging for the daemon registry.

Log lines go to stderr so commands that print JSON on stdout (``list``,
``search``, ``sweep``) stay machine-readable. Every event passes through a
redaction processor, and per-call context (client key, tool, sweep minute) is
attached with :func:`request_context`.

Environment Variables:
    DAEMON_REGISTRY_LOG_FORMAT: "json" or "console" (default)
    DAEMON_REGISTRY_LOG_LEVEL: DEBUG, INFO (default), WARNING or ERROR
    DAEMON_REGISTRY_SERVICE_NAME: value of the ``service`` field on every line
    DAEMON_REGISTRY_DEBUG: truthy to log tool arguments unredacted

Example:
    >>> configure_logging(log_format="json")
    >>> logger = get_logger("daemon_registry.transport.server")
    >>> with request_context(client_key="203.0.113.7", tool="daemon_registry_list"):
    ...     logger.info("registry.rpc.tool_call")
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

ENV_LOG_FORMAT = "DAEMON_REGISTRY_LOG_FORMAT"
ENV_LOG_LEVEL = "DAEMON_REGISTRY_LOG_LEVEL"
ENV_SERVICE_NAME = "DAEMON_REGISTRY_SERVICE_NAME"
ENV_DEBUG = "DAEMON_REGISTRY_DEBUG"

REDACTED_PLACEHOLDER = "***REDACTED***"

# Matched case-insensitively as substrings of the key.
_SENSITIVE_KEY_PATTERNS = frozenset({"password", "token", "secret", "key", "authorization", "auth"})
# Structural fields added by the registry itself; never redacted.
_STRUCTURAL_KEYS = frozenset({"client_key", "event", "logger", "level", "timestamp", "key"})
_TRUTHY = frozenset({"true", "1", "yes", "on"})

_logging_configured = False


@dataclass(frozen=True)
class LogSettings:
    """Resolved logging options."""

    log_format: str = "console"
    log_level: str = "INFO"
    service_name: str = "daemon-registry"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LogSettings:
        env = os.environ if environ is None else environ
        return cls(
            log_format=env.get(ENV_LOG_FORMAT, cls.log_format).strip().lower(),
            log_level=env.get(ENV_LOG_LEVEL, cls.log_level).strip().upper(),
            service_name=env.get(ENV_SERVICE_NAME, cls.service_name),
        )

    @property
    def level(self) -> int:
        level = logging.getLevelName(self.log_level)
        return level if isinstance(level, int) else logging.INFO


def is_debug_mode() -> bool:
    """True when DAEMON_REGISTRY_DEBUG is truthy."""
    return os.environ.get(ENV_DEBUG, "").strip().lower() in _TRUTHY


def _is_sensitive_key(key: str) -> bool:
    lower = key.lower()
    return any(pattern in lower for pattern in _SENSITIVE_KEY_PATTERNS)


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return sanitize_for_logging(value)
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def sanitize_for_logging(data: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of *data* with the values of sensitive keys replaced, recursively.

    Example:
        >>> sanitize_for_logging({"owner": "Ada", "api_key": "abc"})
        {'owner': 'Ada', 'api_key': '***REDACTED***'}
    """
    return {
        k: REDACTED_PLACEHOLDER if _is_sensitive_key(k) else _redact(v) for k, v in data.items()
    }


def redact_sensitive(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """structlog processor applying :func:`sanitize_for_logging` to event fields."""
    if is_debug_mode():
        return event_dict
    for k, v in event_dict.items():
        if k in _STRUCTURAL_KEYS:
            continue
        event_dict[k] = REDACTED_PLACEHOLDER if _is_sensitive_key(k) else _redact(v)
    return event_dict


def _renderers(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(), exception_formatter=structlog.dev.plain_traceback
        )
    ]


def configure_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    service_name: str | None = None,
    force: bool = False,
) -> None:
    """Route stdlib and structlog output through one stderr handler.

    Arguments override the environment; ``force`` reconfigures an already
    configured process.
    """
    global _logging_configured
    if _logging_configured and not force:
        return

    env = LogSettings.from_env()
    settings = LogSettings(
        log_format=(log_format or env.log_format).lower(),
        log_level=(log_level or env.log_level).upper(),
        service_name=service_name or env.service_name,
    )

    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_sensitive,
    ]
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderers(settings.log_format),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.level)

    structlog.contextvars.bind_contextvars(service=settings.service_name)
    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger for *name*; configures defaults on first use."""
    if not _logging_configured:
        configure_logging()
    return structlog.stdlib.get_logger(name)


@contextmanager
def request_context(**values: Any) -> Iterator[None]:
    """Bind *values* to every log line emitted inside the block, then restore."""
    with structlog.contextvars.bound_contextvars(**values):
        yield
