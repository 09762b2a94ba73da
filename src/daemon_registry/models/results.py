"""Request and result models returned by registry operations.

Every externally-facing operation returns one of these discriminated results
instead of raising, so the transport layer can serialize it directly.
"""

from datetime import datetime

from pydantic import Field, field_validator

from daemon_registry.models.base import RegistryBaseModel
from daemon_registry.models.entities import ActivityEvent, DaemonEntry, HealthUpdate
from daemon_registry.models.enums import AnnounceOutcome


class VerificationResult(RegistryBaseModel):
    """Outcome of fetching and checking ``<url>daemon.md``."""

    verified: bool = Field(..., description="True when daemon.md looks well-formed")
    error: str | None = Field(default=None, description="Why verification failed")


class RateLimitStatus(RegistryBaseModel):
    """Answer of a rate-limit check; ``reset_in`` is seconds until the window ends."""

    allowed: bool = Field(..., description="Whether another announce is allowed")
    remaining: int = Field(..., ge=0, description="Announces left after this one")
    reset_in: float = Field(..., ge=0, description="Seconds until the window resets")


class RateLimitInfo(RegistryBaseModel):
    """Rate-limit summary attached to announce results."""

    remaining: int = Field(..., ge=0)
    reset_in: float = Field(..., ge=0)


class AnnounceRequest(RegistryBaseModel):
    """Self-announced daemon as submitted by a client.

    ``url`` and ``owner`` are required; ``id`` is derived from the URL when omitted.
    """

    id: str | None = Field(default=None, description="Namespaced ID; derived when omitted")
    url: str = Field(..., min_length=1, description="Daemon URL")
    owner: str = Field(..., min_length=1, description="Owner name")
    role: str | None = Field(default=None)
    focus: list[str] = Field(default_factory=list)
    protocol: str = Field(default="unknown")
    mcp_url: str | None = Field(default=None)
    tags: list[str] = Field(default_factory=list)

    @field_validator("url", "owner")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class AnnounceResult(RegistryBaseModel):
    """Outcome of an announce attempt.

    ``entry`` is the new entry on success, the existing entry on duplicates,
    and None when the attempt never got as far as the registry.
    """

    success: bool = Field(..., description="True only for ANNOUNCED")
    outcome: AnnounceOutcome = Field(..., description="Terminal state reached")
    message: str = Field(..., description="Human-readable summary")
    entry: DaemonEntry | None = Field(default=None)
    verification_error: str | None = Field(default=None)
    rate_limit: RateLimitInfo | None = Field(default=None)


class HealthCheckResult(RegistryBaseModel):
    """Outcome of a manual health check."""

    success: bool = Field(...)
    message: str = Field(...)
    entry: DaemonEntry | None = Field(default=None)
    health_update: HealthUpdate | None = Field(default=None)


class RegistryListing(RegistryBaseModel):
    """All merged entries plus the snapshot timestamp."""

    entries: list[DaemonEntry] = Field(default_factory=list)
    updated: datetime = Field(...)


class ActivityPage(RegistryBaseModel):
    """Newest-first slice of the activity log; ``total`` counts matches before limiting."""

    events: list[ActivityEvent] = Field(default_factory=list)
    total: int = Field(..., ge=0)


class RegistryStatus(RegistryBaseModel):
    """Counts of registered daemons per reachability tier."""

    version: int = Field(...)
    daemon_count: int = Field(..., ge=0)
    mcp: int = Field(..., ge=0)
    web: int = Field(..., ge=0)
    offline: int = Field(..., ge=0)
    updated: datetime = Field(...)


class SweepReport(RegistryBaseModel):
    """What one scheduled sweep did."""

    minute: int = Field(..., ge=0, lt=60, description="Minute-of-hour swept")
    checked: int = Field(default=0, ge=0, description="Entries due and checked")
    failed: int = Field(default=0, ge=0, description="Entries whose check raised")
    persisted: int = Field(default=0, ge=0, description="Overlay entries written back")
    events: int = Field(default=0, ge=0, description="health_changed events appended")
