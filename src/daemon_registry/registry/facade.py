"""Registry facade: announce, search, list, health-check, activity and capabilities.

Announce walks a fixed sequence of states and stops at the first failure:

    rate-limited -> duplicate-check -> url-validate -> verify -> persist -> done

- rate-limited: a client over its window cap gets RATE_LIMITED, nothing else runs
- duplicate-check: an entry with the same url or derived id is returned as-is
- url-validate: malformed URLs are rejected before any network call
- verify / persist: daemon.md is checked, the entry is appended to the overlay,
  the rate-limit hit is recorded and a ``daemon_announced`` event is logged

Every public coroutine returns a result model; store failures on write paths
come back as failure results instead of propagating.
"""

from __future__ import annotations

import math
import random
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from daemon_registry.clock import Clock, utc_now
from daemon_registry.config import RegistrySettings
from daemon_registry.discovery.cache import DocumentCache
from daemon_registry.discovery.capabilities import CapabilityDiscovery
from daemon_registry.discovery.daemon_md import DaemonDocumentFetcher
from daemon_registry.discovery.health import HealthEngine
from daemon_registry.discovery.verification import Verifier
from daemon_registry.errors import InvalidDaemonURLError, StoreUnavailableError
from daemon_registry.identity import derive_daemon_id, parse_daemon_url
from daemon_registry.models.entities import DaemonCapabilities, DaemonEntry, SeedRegistry
from daemon_registry.models.enums import ActivityType, AnnounceOutcome, DaemonStatus
from daemon_registry.models.results import (
    ActivityPage,
    AnnounceRequest,
    AnnounceResult,
    HealthCheckResult,
    RateLimitInfo,
    RegistryListing,
    RegistryStatus,
    SweepReport,
)
from daemon_registry.observability import get_logger
from daemon_registry.registry.activity import ActivityLog
from daemon_registry.registry.rate_limit import AnnounceRateLimiter
from daemon_registry.registry.sweep import HealthSweep
from daemon_registry.storage import create_kv_store, load_seed
from daemon_registry.storage.entries import EntryStore
from daemon_registry.storage.kv import KVStore

logger = get_logger(__name__)


def _matches_query(entry: DaemonEntry, q: str) -> bool:
    return (
        q in entry.id.lower()
        or q in entry.owner.lower()
        or (entry.role is not None and q in entry.role.lower())
        or any(q in f.lower() for f in entry.focus)
        or any(q in t.lower() for t in entry.tags)
        or q in entry.url.lower()
    )


def filter_entries(
    entries: list[DaemonEntry],
    query: str | None = None,
    tag: str | None = None,
    status: DaemonStatus | None = None,
) -> list[DaemonEntry]:
    """Apply tag (exact, case-insensitive), status and free-text filters in that order."""
    results = entries
    if tag:
        normalized = tag.lower()
        results = [e for e in results if any(t.lower() == normalized for t in e.tags)]
    if status is not None:
        results = [e for e in results if e.status == status]
    if query:
        q = query.lower()
        results = [e for e in results if _matches_query(e, q)]
    return results


class DaemonRegistry:
    """Composes the entry store, limiter, verifier, health engine and activity log."""

    def __init__(
        self,
        store: EntryStore,
        *,
        rate_limiter: AnnounceRateLimiter,
        activity: ActivityLog,
        verifier: Verifier,
        health_engine: HealthEngine,
        discovery: CapabilityDiscovery,
        documents: DaemonDocumentFetcher,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._rate_limiter = rate_limiter
        self._activity = activity
        self._verifier = verifier
        self._health = health_engine
        self._discovery = discovery
        self._documents = documents
        self._clock = clock
        self._sweep = HealthSweep(store, health_engine, activity, clock=clock)

    @classmethod
    def from_settings(
        cls,
        settings: RegistrySettings,
        *,
        kv: KVStore | None = None,
        seed: SeedRegistry | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = utc_now,
    ) -> DaemonRegistry:
        """Wire a registry from settings; *kv*, *seed* and *transport* override for tests."""
        kv = kv if kv is not None else create_kv_store(settings, clock=clock)
        if seed is None:
            seed = load_seed(settings.seed_path)
        timeout = settings.http_timeout
        verifier = Verifier(timeout=timeout, transport=transport)
        return cls(
            EntryStore(kv, seed, clock=clock),
            rate_limiter=AnnounceRateLimiter.from_expression(
                kv, settings.announce_limit, clock=clock
            ),
            activity=ActivityLog(kv, max_events=settings.activity_max_events, clock=clock),
            verifier=verifier,
            health_engine=HealthEngine(
                verifier=verifier, timeout=timeout, transport=transport, clock=clock
            ),
            discovery=CapabilityDiscovery(timeout=timeout, transport=transport, clock=clock),
            documents=DaemonDocumentFetcher(
                DocumentCache(clock=clock), timeout=timeout, transport=transport
            ),
            clock=clock,
        )

    @property
    def store(self) -> EntryStore:
        return self._store

    @property
    def sweep(self) -> HealthSweep:
        return self._sweep

    # ------------------------------------------------------------------
    # Announce
    # ------------------------------------------------------------------

    async def announce(
        self,
        request: AnnounceRequest | Mapping[str, Any],
        client_key: str | None = None,
    ) -> AnnounceResult:
        """Register a self-announced daemon."""
        if not isinstance(request, AnnounceRequest):
            try:
                request = AnnounceRequest.model_validate(dict(request))
            except ValidationError as e:
                fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
                return AnnounceResult(
                    success=False,
                    outcome=AnnounceOutcome.INVALID_INPUT,
                    message=f"Missing or invalid fields: {', '.join(fields) or 'request'}",
                )

        if client_key:
            limit = await self._rate_limiter.check(client_key)
            if not limit.allowed:
                minutes = math.ceil(limit.reset_in / 60)
                logger.info("registry.announce.rate_limited", client_key=client_key)
                return AnnounceResult(
                    success=False,
                    outcome=AnnounceOutcome.RATE_LIMITED,
                    message=f"Rate limit exceeded. Try again in {minutes} minutes.",
                    rate_limit=RateLimitInfo(remaining=0, reset_in=limit.reset_in),
                )

        snapshot = await self._store.load()
        daemon_id = request.id or derive_daemon_id(request.url, request.owner)

        existing = snapshot.find_by_url(request.url)
        if existing is not None:
            return AnnounceResult(
                success=False,
                outcome=AnnounceOutcome.DUPLICATE_URL,
                message="Daemon already registered (URL exists)",
                entry=existing,
            )
        existing = snapshot.find_by_id(daemon_id)
        if existing is not None:
            return AnnounceResult(
                success=False,
                outcome=AnnounceOutcome.DUPLICATE_ID,
                message=f"Daemon ID already registered: {daemon_id}",
                entry=existing,
            )

        try:
            parse_daemon_url(request.url)
        except InvalidDaemonURLError as e:
            return AnnounceResult(
                success=False,
                outcome=AnnounceOutcome.INVALID_URL,
                message=f"Invalid URL format: {e.reason}",
            )

        verification = await self._verifier.verify(request.url)
        now = self._clock()
        entry = DaemonEntry(
            **request.model_dump(exclude={"id"}),
            id=daemon_id,
            announced_at=now,
            verified=verification.verified,
            verified_at=now,
            last_checked=now,
            status=DaemonStatus.MCP if verification.verified else DaemonStatus.WEB,
            healthy=True,
        )

        try:
            await self._store.update_overlay(lambda overlay: [*overlay, entry])
        except StoreUnavailableError as e:
            logger.error("registry.announce.persist_failed", daemon_url=entry.url, error=e.message)
            return AnnounceResult(
                success=False,
                outcome=AnnounceOutcome.STORE_ERROR,
                message=f"Daemon could not be saved: {e.message}",
            )

        try:
            if client_key:
                await self._rate_limiter.record(client_key)
            await self._activity.append(
                ActivityType.DAEMON_ANNOUNCED,
                daemon_url=entry.url,
                daemon_owner=entry.owner,
                details={"verified": verification.verified},
            )
        except StoreUnavailableError as e:
            logger.error(
                "registry.announce.bookkeeping_failed", daemon_url=entry.url, error=e.message
            )
            return AnnounceResult(
                success=False,
                outcome=AnnounceOutcome.STORE_ERROR,
                message=f"Daemon saved but bookkeeping failed: {e.message}",
                entry=entry,
                verification_error=verification.error,
            )

        rate_limit: RateLimitInfo | None = None
        if client_key:
            after = await self._rate_limiter.check(client_key)
            rate_limit = RateLimitInfo(remaining=after.remaining, reset_in=after.reset_in)

        logger.info(
            "registry.announce.accepted",
            daemon_url=entry.url,
            daemon_id=entry.id,
            verified=verification.verified,
        )
        message = (
            "Daemon announced and verified successfully"
            if verification.verified
            else "Daemon announced but verification failed (daemon.md not accessible)"
        )
        return AnnounceResult(
            success=True,
            outcome=AnnounceOutcome.ANNOUNCED,
            message=message,
            entry=entry,
            verification_error=verification.error,
            rate_limit=rate_limit,
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def list_entries(self) -> RegistryListing:
        snapshot = await self._store.load()
        return RegistryListing(entries=snapshot.entries, updated=snapshot.updated)

    async def search(
        self,
        query: str | None = None,
        tag: str | None = None,
        status: DaemonStatus | None = None,
    ) -> list[DaemonEntry]:
        snapshot = await self._store.load()
        return filter_entries(snapshot.entries, query=query, tag=tag, status=status)

    async def activity(
        self,
        limit: int | None = None,
        event_type: ActivityType | None = None,
    ) -> ActivityPage:
        return await self._activity.query(event_type=event_type, limit=limit)

    async def status(self) -> RegistryStatus:
        snapshot = await self._store.load()
        counts = {s: 0 for s in DaemonStatus}
        for entry in snapshot.entries:
            if entry.status is not None:
                counts[entry.status] += 1
        return RegistryStatus(
            version=snapshot.version,
            daemon_count=len(snapshot.entries),
            mcp=counts[DaemonStatus.MCP],
            web=counts[DaemonStatus.WEB],
            offline=counts[DaemonStatus.OFFLINE],
            updated=snapshot.updated,
        )

    async def random_entry(self, rng: random.Random | None = None) -> DaemonEntry | None:
        snapshot = await self._store.load()
        if not snapshot.entries:
            return None
        return (rng or random).choice(snapshot.entries)

    # ------------------------------------------------------------------
    # Remote checks
    # ------------------------------------------------------------------

    async def health_check(self, url: str) -> HealthCheckResult:
        """Health-check one registered daemon now and persist the delta if it is announced."""
        snapshot = await self._store.load()
        entry = snapshot.find_by_url(url)
        if entry is None:
            return HealthCheckResult(success=False, message=f"Daemon not found: {url}")

        update = await self._health.health_check(entry)
        updated = entry.apply_health(update)
        try:
            await self._store.apply_health_updates({url: update})
        except StoreUnavailableError as e:
            logger.error("registry.health.persist_failed", daemon_url=url, error=e.message)
            return HealthCheckResult(
                success=False,
                message=f"Health check completed but could not be saved: {e.message}",
                entry=updated,
                health_update=update,
            )
        return HealthCheckResult(
            success=True,
            message=f"Health check completed: {update.status.value}",
            entry=updated,
            health_update=update,
        )

    async def discover_capabilities(
        self, url: str, mcp_url: str | None = None
    ) -> DaemonCapabilities:
        """Call tools/list; without an override, a registered entry's mcp_url is used."""
        if mcp_url is None:
            snapshot = await self._store.load()
            entry = next((e for e in snapshot.entries if url in (e.url, e.mcp_url)), None)
            if entry is not None:
                mcp_url = entry.mcp_url
        return await self._discovery.discover(url, mcp_url)

    async def fetch_sections(self, url: str) -> dict[str, str]:
        """Parsed daemon.md sections of *url* (cached for five minutes).

        Raises:
            DocumentUnavailableError: If the document cannot be fetched and is not cached.
        """
        return await self._documents.get_sections(url)

    async def run_sweep(self, minute: int | None = None) -> SweepReport:
        return await self._sweep.run(minute)
