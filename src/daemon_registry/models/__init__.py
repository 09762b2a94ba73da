"""Daemon registry data models.

Public exports:
    Entities: DaemonEntry, SeedRegistry, RegistrySnapshot, HealthUpdate,
        ActivityEvent, RateLimitRecord, ToolSummary, DaemonCapabilities
    Results: AnnounceRequest, AnnounceResult, VerificationResult, RateLimitStatus,
        RateLimitInfo, HealthCheckResult, RegistryListing, ActivityPage,
        RegistryStatus, SweepReport
    Enums: DaemonStatus, ActivityType, AnnounceOutcome
"""

from daemon_registry.models.base import RegistryBaseModel, StoredModel
from daemon_registry.models.entities import (
    ActivityEvent,
    DaemonCapabilities,
    DaemonEntry,
    HealthUpdate,
    RateLimitRecord,
    RegistrySnapshot,
    SeedRegistry,
    ToolSummary,
)
from daemon_registry.models.enums import ActivityType, AnnounceOutcome, DaemonStatus
from daemon_registry.models.results import (
    ActivityPage,
    AnnounceRequest,
    AnnounceResult,
    HealthCheckResult,
    RateLimitInfo,
    RateLimitStatus,
    RegistryListing,
    RegistryStatus,
    SweepReport,
    VerificationResult,
)

__all__ = [
    "ActivityEvent",
    "ActivityPage",
    "ActivityType",
    "AnnounceOutcome",
    "AnnounceRequest",
    "AnnounceResult",
    "DaemonCapabilities",
    "DaemonEntry",
    "DaemonStatus",
    "HealthCheckResult",
    "HealthUpdate",
    "RateLimitInfo",
    "RateLimitRecord",
    "RateLimitStatus",
    "RegistryBaseModel",
    "RegistryListing",
    "RegistrySnapshot",
    "RegistryStatus",
    "SeedRegistry",
    "StoredModel",
    "SweepReport",
    "ToolSummary",
    "VerificationResult",
]
