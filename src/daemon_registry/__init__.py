"""Daemon Registry.

A discovery registry for "daemon" endpoints: self-announced personal agents
that publish a ``daemon.md`` document and optionally an MCP JSON-RPC API.

Public API:
    DaemonRegistry: announce / list / search / health-check facade
    RegistrySettings: environment-driven configuration
    derive_daemon_id: stable namespaced identifier for a daemon URL
    check_minute: per-URL health sweep slot
"""

__version__ = "1.0.0"

from daemon_registry.config import RegistrySettings  # noqa: E402
from daemon_registry.discovery.health import check_minute  # noqa: E402
from daemon_registry.identity import derive_daemon_id  # noqa: E402
from daemon_registry.registry.facade import DaemonRegistry  # noqa: E402

__all__ = [
    "DaemonRegistry",
    "RegistrySettings",
    "__version__",
    "check_minute",
    "derive_daemon_id",
]
