"""Bounded, newest-first activity log persisted in the KV store."""

from __future__ import annotations

from typing import Any

from daemon_registry.clock import Clock, utc_now
from daemon_registry.models.entities import ActivityEvent
from daemon_registry.models.enums import ActivityType
from daemon_registry.models.results import ActivityPage
from daemon_registry.storage.blobs import (
    decode_model_list,
    encode_model_list,
    read_key,
    write_key,
)
from daemon_registry.storage.kv import KVStore

KV_ACTIVITY_KEY = "activity_feed"
DEFAULT_MAX_EVENTS = 100
DEFAULT_QUERY_LIMIT = 20


class ActivityLog:
    """Append-only event history capped at ``max_events``.

    New events are prepended; once the log exceeds the cap the oldest events
    at the tail are discarded. Appends are read-modify-write on one KV key and
    share the overlay's lost-update behaviour under concurrent writers.
    """

    def __init__(
        self,
        kv: KVStore,
        *,
        max_events: int = DEFAULT_MAX_EVENTS,
        clock: Clock = utc_now,
    ) -> None:
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._kv = kv
        self._max_events = max_events
        self._clock = clock

    @property
    def max_events(self) -> int:
        return self._max_events

    async def load(self, *, strict: bool = False) -> list[ActivityEvent]:
        raw = await read_key(self._kv, KV_ACTIVITY_KEY, strict=strict)
        return decode_model_list(raw, ActivityEvent, key=KV_ACTIVITY_KEY)

    async def append(
        self,
        event_type: ActivityType,
        daemon_url: str,
        daemon_owner: str,
        details: dict[str, Any] | None = None,
    ) -> ActivityEvent:
        """Timestamp and prepend an event, then truncate to ``max_events``.

        Raises:
            StoreUnavailableError: If the store read or write fails.
        """
        event = ActivityEvent(
            type=event_type,
            daemon_url=daemon_url,
            daemon_owner=daemon_owner,
            timestamp=self._clock(),
            details=details or {},
        )
        events = await self.load(strict=True)
        events.insert(0, event)
        del events[self._max_events :]
        await write_key(self._kv, KV_ACTIVITY_KEY, encode_model_list(events))
        return event

    async def query(
        self,
        event_type: ActivityType | None = None,
        limit: int | None = None,
    ) -> ActivityPage:
        """Return up to *limit* newest events (default 20) and the pre-limit match count."""
        events = await self.load(strict=False)
        if event_type is not None:
            events = [e for e in events if e.type == event_type]
        max_events = limit if limit and limit > 0 else DEFAULT_QUERY_LIMIT
        return ActivityPage(events=events[:max_events], total=len(events))
