"""Enumerations for the daemon registry."""

from enum import Enum


class DaemonStatus(str, Enum):
    """Reachability tier of a daemon.

    Ordered by preference: MCP (answers JSON-RPC or serves a valid daemon.md),
    WEB (plain GET succeeds), OFFLINE (nothing answered).

    Example:
        >>> DaemonStatus.MCP.is_healthy()
        True
        >>> DaemonStatus.OFFLINE.is_healthy()
        False
    """

    MCP = "mcp"
    WEB = "web"
    OFFLINE = "offline"

    def is_healthy(self) -> bool:
        return self is not DaemonStatus.OFFLINE


class ActivityType(str, Enum):
    """Kinds of events recorded in the activity log."""

    DAEMON_ANNOUNCED = "daemon_announced"
    HEALTH_CHANGED = "health_changed"
    DAEMON_VERIFIED = "daemon_verified"


class AnnounceOutcome(str, Enum):
    """Terminal state reached by an announce attempt."""

    ANNOUNCED = "announced"
    RATE_LIMITED = "rate_limited"
    DUPLICATE_URL = "duplicate_url"
    DUPLICATE_ID = "duplicate_id"
    INVALID_URL = "invalid_url"
    INVALID_INPUT = "invalid_input"
    STORE_ERROR = "store_error"

    @property
    def succeeded(self) -> bool:
        return self is AnnounceOutcome.ANNOUNCED
