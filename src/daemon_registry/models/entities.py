"""Core entity models for the daemon registry.

- DaemonEntry: one registered endpoint (seed or announced)
- SeedRegistry: the static, process-embedded list of entries plus its version
- RegistrySnapshot: merged seed + overlay view returned by one load
- HealthUpdate: partial entry produced by a health check
- ActivityEvent: one entry of the bounded activity log
- RateLimitRecord: per-client fixed-window counter
- ToolSummary / DaemonCapabilities: outcome of capability discovery
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from daemon_registry.models.base import StoredModel
from daemon_registry.models.enums import ActivityType, DaemonStatus


class DaemonEntry(StoredModel):
    """One registered daemon endpoint.

    Identity (``id``) is namespaced as ``<reversed-domain>.<identifier>`` and
    never changes; endpoints (``url``, ``mcp_url``) are descriptive. Health
    fields are written only by the health engine.

    Example:
        >>> entry = DaemonEntry(
        ...     id="com.example.x.ada",
        ...     url="https://x.example.com/",
        ...     owner="Ada",
        ...     tags=["security"],
        ... )
        >>> entry.status is None
        True
    """

    id: str = Field(..., description="Namespaced identifier, unique in the registry")
    url: str = Field(..., description="Canonical daemon URL, unique in the registry")
    owner: str = Field(..., description="Owner name")
    role: str | None = Field(default=None, description="Owner's role or title")
    focus: list[str] = Field(default_factory=list, description="Areas of focus")
    protocol: str | None = Field(default=None, description="mcp-rpc, json-rpc or unknown")
    mcp_url: str | None = Field(default=None, description="Alternate JSON-RPC endpoint")
    api_url: str | None = Field(default=None, description="Alternate REST endpoint")
    tags: list[str] = Field(default_factory=list, description="Searchable tags")
    announced_at: datetime | None = Field(default=None, description="Set once at creation")

    verified: bool = Field(default=False, description="daemon.md verification at announce")
    verified_at: datetime | None = Field(default=None, description="When verification ran")

    last_checked: datetime | None = Field(default=None, description="Last health check")
    status: DaemonStatus | None = Field(default=None, description="Reachability tier")
    healthy: bool | None = Field(default=None, description="Whether the daemon works as expected")

    content_hash: str | None = Field(default=None, description="SHA256 of daemon.md content")

    def apply_health(self, update: "HealthUpdate") -> "DaemonEntry":
        """Return a copy with the health fields of *update* merged in."""
        return self.model_copy(update=update.model_dump())


class SeedRegistry(StoredModel):
    """Static seed list supplied at startup; entries are read-only templates."""

    version: int = Field(default=1, ge=1, description="Seed data version")
    entries: list[DaemonEntry] = Field(default_factory=list, description="Seed entries")


class RegistrySnapshot(StoredModel):
    """Merged seed + overlay view for the duration of one operation.

    ``updated`` is stamped on every load and is informational only.
    """

    version: int = Field(..., description="Seed data version")
    entries: list[DaemonEntry] = Field(default_factory=list, description="Merged entries")
    updated: datetime = Field(..., description="When this snapshot was assembled")

    def find_by_url(self, url: str) -> DaemonEntry | None:
        return next((e for e in self.entries if e.url == url), None)

    def find_by_id(self, daemon_id: str) -> DaemonEntry | None:
        return next((e for e in self.entries if e.id == daemon_id), None)


class HealthUpdate(StoredModel):
    """Partial DaemonEntry produced by one health check."""

    last_checked: datetime = Field(..., description="Always stamped, even if unchanged")
    status: DaemonStatus = Field(..., description="Resolved reachability tier")
    healthy: bool = Field(..., description="False only when offline")


class ActivityEvent(StoredModel):
    """Append-only activity log entry."""

    type: ActivityType = Field(..., description="Event kind")
    daemon_url: str = Field(..., description="URL of the daemon concerned")
    daemon_owner: str = Field(..., description="Owner of the daemon concerned")
    timestamp: datetime = Field(..., description="When the event was appended")
    details: dict[str, Any] = Field(default_factory=dict, description="Opaque key/value details")


class RateLimitRecord(StoredModel):
    """Per-client fixed-window counter as persisted in the KV store.

    ``window_start`` is epoch seconds; it is stored under the ``windowStart`` key.
    """

    count: int = Field(default=0, ge=0, description="Hits recorded in the window")
    window_start: float = Field(..., alias="windowStart", description="Window start (epoch s)")


class ToolSummary(StoredModel):
    """Name and description of one tool advertised by a daemon."""

    name: str = Field(..., description="Tool name")
    description: str = Field(default="", description="Tool description")


class DaemonCapabilities(StoredModel):
    """Outcome of a ``tools/list`` capability request."""

    url: str = Field(..., description="Daemon URL that was asked about")
    mcp_url: str | None = Field(default=None, description="Override endpoint actually queried")
    supports_mcp: bool = Field(..., description="True when tools/list succeeded")
    tools: list[ToolSummary] | None = Field(default=None, description="Advertised tools")
    error: str | None = Field(default=None, description="Why discovery failed")
    checked_at: datetime = Field(..., description="When discovery ran")
