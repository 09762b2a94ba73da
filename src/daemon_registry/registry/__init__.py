"""Registry core: announce intake, health sweep, activity log and facade."""

from daemon_registry.registry.activity import ActivityLog
from daemon_registry.registry.facade import DaemonRegistry, filter_entries
from daemon_registry.registry.rate_limit import AnnounceRateLimiter
from daemon_registry.registry.sweep import HealthSweep

__all__ = [
    "ActivityLog",
    "AnnounceRateLimiter",
    "DaemonRegistry",
    "HealthSweep",
    "filter_entries",
]
