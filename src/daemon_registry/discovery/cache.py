"""Time-boxed memoization of parsed daemon documents.

Entries are keyed by source URL and hold the parsed sections plus the fetch
time. Fresh lookups honour the TTL (default 5 minutes); stale lookups ignore
it so a failed refresh can fall back to the last good copy. The clock is
injectable so tests control expiry.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from threading import Lock

from daemon_registry.clock import Clock, utc_now

# Default TTL in seconds (5 minutes)
DEFAULT_TTL = 300.0

# Default max cache size (number of documents)
DEFAULT_MAX_SIZE = 256


@dataclass(frozen=True)
class CachedDocument:
    """Parsed sections of one daemon.md and when they were fetched."""

    sections: dict[str, str]
    fetched_at: datetime


class DocumentCache:
    """Thread-safe in-memory LRU cache of parsed daemon documents.

    Example:
        >>> cache = DocumentCache(ttl=300.0)
        >>> _ = cache.set("https://x.example.com/daemon.md", {"ABOUT": "hi"})
        >>> cache.get("https://x.example.com/daemon.md").sections["ABOUT"]
        'hi'
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Clock = utc_now,
    ) -> None:
        self._cache: OrderedDict[str, CachedDocument] = OrderedDict()
        self._lock = Lock()
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock

    def _is_fresh(self, document: CachedDocument) -> bool:
        return (self._clock() - document.fetched_at).total_seconds() < self._ttl

    def get(self, url: str) -> CachedDocument | None:
        """Return the cached document if it is younger than the TTL."""
        with self._lock:
            document = self._cache.get(url)
            if document is None or not self._is_fresh(document):
                return None
            self._cache.move_to_end(url)
            return document

    def get_stale(self, url: str) -> CachedDocument | None:
        """Return the cached document regardless of age."""
        with self._lock:
            return self._cache.get(url)

    def set(self, url: str, sections: dict[str, str]) -> CachedDocument:
        document = CachedDocument(sections=dict(sections), fetched_at=self._clock())
        with self._lock:
            if url in self._cache:
                del self._cache[url]
            elif self._max_size > 0:
                while len(self._cache) >= self._max_size:
                    self._cache.popitem(last=False)
            self._cache[url] = document
        return document

    def invalidate(self, url: str) -> None:
        with self._lock:
            self._cache.pop(url, None)

    def clear_all(self) -> None:
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._cache)
