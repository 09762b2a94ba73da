"""Key-value backing store abstraction.

The registry assumes a simple external blob store: ``get`` returns bytes or
None, ``put`` overwrites a whole value with an optional TTL. There are no
transactions, version tokens or locks; callers that read, modify and write
back can lose concurrent updates.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from daemon_registry.clock import Clock, utc_now


@runtime_checkable
class KVStore(Protocol):
    """Async key-value blob store."""

    async def get(self, key: str) -> bytes | None: ...

    async def put(self, key: str, value: bytes, ttl: float | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryKVStore:
    """In-memory KVStore with TTL expiry against an injectable clock.

    Useful for tests and single-process deployments; contents vanish on restart.
    The lock guards the dict, it does not make read-modify-write sequences atomic.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._data: dict[str, tuple[bytes, float | None]] = {}

    def _now(self) -> float:
        return self._clock().timestamp()

    async def get(self, key: str) -> bytes | None:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and self._now() >= expires_at:
                del self._data[key]
                return None
            return value

    async def put(self, key: str, value: bytes, ttl: float | None = None) -> None:
        expires_at = self._now() + ttl if ttl is not None else None
        with self._lock:
            self._data[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)
