"""Outbound discovery of daemon endpoints.

- verification: daemon.md fetch and format check
- health: three-way health check and jittered schedule slots
- capabilities: tools/list capability discovery
- daemon_md / cache: parsed daemon.md sections behind a TTL cache
"""

from daemon_registry.discovery.cache import DocumentCache
from daemon_registry.discovery.capabilities import CapabilityDiscovery
from daemon_registry.discovery.daemon_md import DaemonDocumentFetcher, parse_daemon_md
from daemon_registry.discovery.health import HealthEngine, check_minute, resolve_status
from daemon_registry.discovery.verification import Verifier, daemon_document_url

__all__ = [
    "CapabilityDiscovery",
    "DaemonDocumentFetcher",
    "DocumentCache",
    "HealthEngine",
    "Verifier",
    "check_minute",
    "daemon_document_url",
    "parse_daemon_md",
    "resolve_status",
]
