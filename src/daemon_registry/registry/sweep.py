"""Scheduled health sweep.

Once per minute the sweep walks every registry entry and health-checks only
those whose :func:`~daemon_registry.discovery.health.check_minute` slot equals
the current minute-of-hour. The pass is sequential; each entry is isolated so
one failure does not abort the rest. Deltas for overlay entries are written
back in one read-modify-write, and a ``health_changed`` event is appended for
every entry whose previously known status changed.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

from daemon_registry.clock import Clock, utc_now
from daemon_registry.discovery.health import HealthEngine, check_minute
from daemon_registry.models.entities import DaemonEntry, HealthUpdate
from daemon_registry.models.enums import ActivityType
from daemon_registry.models.results import SweepReport
from daemon_registry.observability import get_logger, request_context
from daemon_registry.registry.activity import ActivityLog
from daemon_registry.storage.entries import EntryStore

logger = get_logger(__name__)


class HealthSweep:
    """One-minute health sweep over the merged registry."""

    def __init__(
        self,
        store: EntryStore,
        engine: HealthEngine,
        activity: ActivityLog,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._engine = engine
        self._activity = activity
        self._clock = clock

    async def run(self, minute: int | None = None) -> SweepReport:
        """Check every entry due at *minute* (default: the clock's current minute).

        Raises:
            StoreUnavailableError: If writing deltas or events fails.
        """
        if minute is None:
            minute = self._clock().minute
        if not 0 <= minute < 60:
            raise ValueError(f"minute must be in [0, 60), got {minute}")
        with request_context(sweep_minute=minute):
            return await self._run(minute)

    async def _run(self, minute: int) -> SweepReport:
        snapshot = await self._store.load()
        results: list[tuple[DaemonEntry, HealthUpdate]] = []
        failed = 0

        for entry in snapshot.entries:
            if check_minute(entry.url) != minute:
                continue
            try:
                update = await self._engine.health_check(entry)
            except Exception:
                failed += 1
                logger.exception("registry.sweep.entry_failed", daemon_url=entry.url)
                continue
            results.append((entry, update))

        persisted = await self._store.apply_health_updates(
            {entry.url: update for entry, update in results}
        )

        events = 0
        for entry, update in results:
            if entry.status is not None and entry.status != update.status:
                await self._activity.append(
                    ActivityType.HEALTH_CHANGED,
                    daemon_url=entry.url,
                    daemon_owner=entry.owner,
                    details={"old_status": entry.status.value, "new_status": update.status.value},
                )
                events += 1

        report = SweepReport(
            minute=minute,
            checked=len(results) + failed,
            failed=failed,
            persisted=persisted,
            events=events,
        )
        logger.info("registry.sweep.completed", **report.model_dump())
        return report

    def _seconds_until_next_minute(self) -> float:
        now = self._clock()
        next_minute = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
        return max(0.0, (next_minute - now).total_seconds())

    async def run_periodic(self, stop: asyncio.Event) -> None:
        """Run :meth:`run` at every wall-clock minute boundary until *stop* is set."""
        logger.info("registry.sweep.started")
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._seconds_until_next_minute())
            except asyncio.TimeoutError:
                pass
            else:
                break
            try:
                await self.run()
            except Exception:
                logger.exception("registry.sweep.failed")
        logger.info("registry.sweep.stopped")
