"""Tool definitions advertised by the registry's ``tools/list``."""

from __future__ import annotations

from typing import Any

from daemon_registry.models.enums import ActivityType, DaemonStatus


def _schema(
    properties: dict[str, Any] | None = None, required: list[str] | None = None
) -> dict[str, Any]:
    return {"type": "object", "properties": properties or {}, "required": required or []}


_URL_PROPERTY = {"type": "string", "description": "Daemon URL"}

REGISTRY_TOOLS: list[dict[str, Any]] = [
    {
        "name": "daemon_registry_list",
        "description": "List all known daemons in the registry",
        "inputSchema": _schema(),
    },
    {
        "name": "daemon_registry_search",
        "description": "Search daemons by name, owner, tags, focus area, or health status",
        "inputSchema": _schema(
            {
                "query": {"type": "string", "description": "Matches id, owner, tags, url"},
                "tag": {"type": "string", "description": "Filter by specific tag"},
                "status": {"type": "string", "enum": [s.value for s in DaemonStatus]},
            }
        ),
    },
    {
        "name": "daemon_registry_announce",
        "description": "Announce a new daemon to the registry",
        "inputSchema": _schema(
            {
                "id": {"type": "string", "description": "Namespaced ID, derived if omitted"},
                "url": _URL_PROPERTY,
                "owner": {"type": "string", "description": "Owner name"},
                "role": {"type": "string", "description": "Owner's role or title"},
                "focus": {"type": "array", "items": {"type": "string"}},
                "protocol": {"type": "string", "description": "mcp-rpc, json-rpc, or unknown"},
                "mcp_url": {"type": "string", "description": "MCP API URL if different from url"},
                "tags": {"type": "array", "items": {"type": "string"}},
            },
            required=["url", "owner"],
        ),
    },
    {
        "name": "daemon_registry_health_check",
        "description": "Manually trigger a health check for a specific daemon",
        "inputSchema": _schema({"url": _URL_PROPERTY}, required=["url"]),
    },
    {
        "name": "daemon_registry_activity",
        "description": "Get recent activity feed (announcements, health changes)",
        "inputSchema": _schema(
            {
                "limit": {"type": "number", "description": "Maximum events to return (default 20)"},
                "type": {"type": "string", "enum": [t.value for t in ActivityType]},
            }
        ),
    },
    {
        "name": "daemon_registry_capabilities",
        "description": "Discover MCP tools/capabilities supported by a daemon",
        "inputSchema": _schema({"url": _URL_PROPERTY}, required=["url"]),
    },
    {
        "name": "daemon_registry_random",
        "description": "Discover a random daemon from the registry for exploration",
        "inputSchema": _schema(),
    },
    {
        "name": "daemon_registry_profile",
        "description": "Read the sections of a daemon's daemon.md document",
        "inputSchema": _schema({"url": _URL_PROPERTY}, required=["url"]),
    },
    {
        "name": "get_status",
        "description": "Get registry status - version, daemon counts per status",
        "inputSchema": _schema(),
    },
]
