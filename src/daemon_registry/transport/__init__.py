"""JSON-RPC transport for the daemon registry."""

from daemon_registry.transport.server import RegistryRpcHandler, create_app
from daemon_registry.transport.tools import REGISTRY_TOOLS

__all__ = ["REGISTRY_TOOLS", "RegistryRpcHandler", "create_app"]
