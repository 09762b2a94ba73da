"""Environment-driven settings for the daemon registry.

Example:
    >>> settings = RegistrySettings.from_env()
    >>> settings.announce_limit
    '5/hour'
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from limits import RateLimitItem, parse
from pydantic import Field

from daemon_registry.errors import ConfigurationError
from daemon_registry.models.base import RegistryBaseModel

ENV_STORAGE_BACKEND = "DAEMON_REGISTRY_STORAGE_BACKEND"
ENV_STORAGE_PATH = "DAEMON_REGISTRY_STORAGE_PATH"
ENV_SEED_PATH = "DAEMON_REGISTRY_SEED_PATH"
ENV_ANNOUNCE_LIMIT = "DAEMON_REGISTRY_ANNOUNCE_LIMIT"
ENV_HTTP_TIMEOUT = "DAEMON_REGISTRY_HTTP_TIMEOUT"
ENV_ACTIVITY_MAX_EVENTS = "DAEMON_REGISTRY_ACTIVITY_MAX_EVENTS"
ENV_SWEEP_ENABLED = "DAEMON_REGISTRY_SWEEP_ENABLED"

DEFAULT_STORAGE_BACKEND = "memory"
DEFAULT_STORAGE_PATH = "daemon_registry.db"
# 5 announces per client per hour.
DEFAULT_ANNOUNCE_LIMIT = "5/hour"
DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_ACTIVITY_MAX_EVENTS = 100

STORAGE_BACKENDS = frozenset({"memory", "sqlite"})
_TRUTHY = frozenset({"true", "1", "yes", "on"})
_FALSY = frozenset({"false", "0", "no", "off"})


def parse_announce_limit(expression: str) -> RateLimitItem:
    """Parse a single ``N/period`` expression (e.g. ``5/hour``) with the limits package.

    Raises:
        ConfigurationError: If the expression does not parse.
    """
    try:
        return parse(expression)
    except ValueError as e:
        raise ConfigurationError(ENV_ANNOUNCE_LIMIT, expression, str(e)) from e


class RegistrySettings(RegistryBaseModel):
    """Resolved runtime settings."""

    storage_backend: str = Field(default=DEFAULT_STORAGE_BACKEND)
    storage_path: Path = Field(default=Path(DEFAULT_STORAGE_PATH))
    seed_path: Path | None = Field(default=None)
    announce_limit: str = Field(default=DEFAULT_ANNOUNCE_LIMIT)
    http_timeout: float = Field(default=DEFAULT_HTTP_TIMEOUT, gt=0)
    activity_max_events: int = Field(default=DEFAULT_ACTIVITY_MAX_EVENTS, ge=1)
    sweep_enabled: bool = Field(default=True)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RegistrySettings:
        """Build settings from environment variables.

        Raises:
            ConfigurationError: If any variable holds an unusable value.
        """
        env = os.environ if environ is None else environ

        backend = env.get(ENV_STORAGE_BACKEND, DEFAULT_STORAGE_BACKEND).strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise ConfigurationError(ENV_STORAGE_BACKEND, backend, "use 'memory' or 'sqlite'")

        limit = env.get(ENV_ANNOUNCE_LIMIT, DEFAULT_ANNOUNCE_LIMIT).strip()
        parse_announce_limit(limit)

        raw_timeout = env.get(ENV_HTTP_TIMEOUT, str(DEFAULT_HTTP_TIMEOUT))
        try:
            timeout = float(raw_timeout)
        except ValueError as e:
            raise ConfigurationError(ENV_HTTP_TIMEOUT, raw_timeout, "not a number") from e
        if timeout <= 0:
            raise ConfigurationError(ENV_HTTP_TIMEOUT, raw_timeout, "must be positive")

        raw_max = env.get(ENV_ACTIVITY_MAX_EVENTS, str(DEFAULT_ACTIVITY_MAX_EVENTS))
        try:
            max_events = int(raw_max)
        except ValueError as e:
            raise ConfigurationError(ENV_ACTIVITY_MAX_EVENTS, raw_max, "not an integer") from e
        if max_events < 1:
            raise ConfigurationError(ENV_ACTIVITY_MAX_EVENTS, raw_max, "must be at least 1")

        raw_sweep = env.get(ENV_SWEEP_ENABLED, "true").strip().lower()
        if raw_sweep not in _TRUTHY | _FALSY:
            raise ConfigurationError(ENV_SWEEP_ENABLED, raw_sweep, "expected true or false")

        seed = env.get(ENV_SEED_PATH, "").strip()

        return cls(
            storage_backend=backend,
            storage_path=Path(env.get(ENV_STORAGE_PATH, DEFAULT_STORAGE_PATH).strip()),
            seed_path=Path(seed) if seed else None,
            announce_limit=limit,
            http_timeout=timeout,
            activity_max_events=max_events,
            sweep_enabled=raw_sweep in _TRUTHY,
        )
