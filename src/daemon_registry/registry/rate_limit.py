"""Fixed-window announce rate limiting persisted in the KV store.

Each client key owns one :class:`RateLimitRecord` under ``rate_limit:<key>``.
The window opens at the first recorded announce and lasts ``window_seconds``;
records are written with a TTL of one window so stale ones clean themselves up.

``check`` is read-only and ``record`` is a separate read-modify-write. The two
are not atomic: concurrent announces from the same client can both pass
``check`` and both ``record``, and concurrent ``record`` calls can lose a hit.

The limit itself is configured as a ``limits`` expression such as ``5/hour``.
"""

from __future__ import annotations

from daemon_registry.clock import Clock, utc_now
from daemon_registry.config import DEFAULT_ANNOUNCE_LIMIT, parse_announce_limit
from daemon_registry.models.entities import RateLimitRecord
from daemon_registry.models.results import RateLimitStatus
from daemon_registry.observability import get_logger
from daemon_registry.storage.blobs import decode_model, read_key, write_key
from daemon_registry.storage.kv import KVStore

logger = get_logger(__name__)

KV_RATE_LIMIT_PREFIX = "rate_limit:"
DEFAULT_MAX_ANNOUNCES = 5
DEFAULT_WINDOW_SECONDS = 60 * 60


def rate_limit_key(client_key: str) -> str:
    return f"{KV_RATE_LIMIT_PREFIX}{client_key}"


class AnnounceRateLimiter:
    """Per-client cap of ``max_announces`` per ``window_seconds``.

    Example:
        >>> limiter = AnnounceRateLimiter.from_expression(kv, "5/hour")
        >>> status = await limiter.check("203.0.113.7")
        >>> status.allowed, status.remaining
        (True, 4)
    """

    def __init__(
        self,
        kv: KVStore,
        *,
        max_announces: int = DEFAULT_MAX_ANNOUNCES,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        if max_announces < 1:
            raise ValueError("max_announces must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._kv = kv
        self._max = max_announces
        self._window = float(window_seconds)
        self._clock = clock

    @classmethod
    def from_expression(
        cls,
        kv: KVStore,
        expression: str = DEFAULT_ANNOUNCE_LIMIT,
        *,
        clock: Clock = utc_now,
    ) -> AnnounceRateLimiter:
        item = parse_announce_limit(expression)
        return cls(
            kv,
            max_announces=int(item.amount),
            window_seconds=float(item.get_expiry()),
            clock=clock,
        )

    @property
    def max_announces(self) -> int:
        return self._max

    @property
    def window_seconds(self) -> float:
        return self._window

    def _active(self, record: RateLimitRecord | None, now: float) -> RateLimitRecord | None:
        if record is None or now - record.window_start >= self._window:
            return None
        return record

    async def _load(self, client_key: str, *, strict: bool) -> RateLimitRecord | None:
        key = rate_limit_key(client_key)
        raw = await read_key(self._kv, key, strict=strict)
        return decode_model(raw, RateLimitRecord, key=key)

    async def check(self, client_key: str) -> RateLimitStatus:
        """Report whether *client_key* may announce now; never writes."""
        now = self._clock().timestamp()
        record = self._active(await self._load(client_key, strict=False), now)

        if record is None:
            return RateLimitStatus(allowed=True, remaining=self._max - 1, reset_in=self._window)

        reset_in = self._window - (now - record.window_start)
        if record.count >= self._max:
            return RateLimitStatus(allowed=False, remaining=0, reset_in=reset_in)
        return RateLimitStatus(
            allowed=True, remaining=self._max - record.count - 1, reset_in=reset_in
        )

    async def record(self, client_key: str) -> RateLimitRecord:
        """Count one announce for *client_key*, opening a new window if needed.

        Raises:
            StoreUnavailableError: If the store read or write fails.
        """
        now = self._clock().timestamp()
        record = self._active(await self._load(client_key, strict=True), now)

        if record is None:
            updated = RateLimitRecord(count=1, window_start=now)
        else:
            updated = record.model_copy(update={"count": record.count + 1})

        payload = updated.model_dump_json(by_alias=True).encode("utf-8")
        await write_key(self._kv, rate_limit_key(client_key), payload, ttl=self._window)
        logger.debug(
            "registry.rate_limit.recorded",
            client_key=client_key,
            count=updated.count,
            max_announces=self._max,
        )
        return updated
