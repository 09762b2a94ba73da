"""Tests for the fixed-window announce rate limiter."""

import json

import pytest

from daemon_registry.errors import StoreUnavailableError
from daemon_registry.registry.rate_limit import AnnounceRateLimiter, rate_limit_key
from daemon_registry.storage.kv import InMemoryKVStore
from tests.factories import FailingKVStore, FakeClock

CLIENT = "203.0.113.7"


@pytest.fixture
def limiter(kv: InMemoryKVStore, clock: FakeClock) -> AnnounceRateLimiter:
    return AnnounceRateLimiter(kv, max_announces=5, window_seconds=3600, clock=clock)


class TestCheck:
    """Tests for AnnounceRateLimiter.check."""

    @pytest.mark.asyncio
    async def test_unknown_client_allowed(self, limiter: AnnounceRateLimiter) -> None:
        status = await limiter.check(CLIENT)
        assert status.allowed is True
        assert status.remaining == 4
        assert status.reset_in == 3600

    @pytest.mark.asyncio
    async def test_check_does_not_consume(
        self, limiter: AnnounceRateLimiter, kv: InMemoryKVStore
    ) -> None:
        for _ in range(10):
            assert (await limiter.check(CLIENT)).allowed
        assert await kv.get(rate_limit_key(CLIENT)) is None

    @pytest.mark.asyncio
    async def test_remaining_counts_down(self, limiter: AnnounceRateLimiter) -> None:
        await limiter.record(CLIENT)
        await limiter.record(CLIENT)
        status = await limiter.check(CLIENT)
        assert status.allowed is True
        assert status.remaining == 2

    @pytest.mark.asyncio
    async def test_denied_after_max_records(
        self, limiter: AnnounceRateLimiter, clock: FakeClock
    ) -> None:
        for _ in range(5):
            await limiter.record(CLIENT)
        clock.advance(600)
        status = await limiter.check(CLIENT)
        assert status.allowed is False
        assert status.remaining == 0
        assert 0 < status.reset_in <= 3600
        assert status.reset_in == pytest.approx(3000)

    @pytest.mark.asyncio
    async def test_window_elapses(self, limiter: AnnounceRateLimiter, clock: FakeClock) -> None:
        for _ in range(5):
            await limiter.record(CLIENT)
        clock.advance(3600)
        status = await limiter.check(CLIENT)
        assert status.allowed is True
        assert status.remaining == 4

    @pytest.mark.asyncio
    async def test_clients_are_independent(self, limiter: AnnounceRateLimiter) -> None:
        for _ in range(5):
            await limiter.record(CLIENT)
        assert (await limiter.check("198.51.100.1")).allowed is True

    @pytest.mark.asyncio
    async def test_malformed_record_reads_as_fresh(
        self, limiter: AnnounceRateLimiter, kv: InMemoryKVStore
    ) -> None:
        await kv.put(rate_limit_key(CLIENT), b'{"count": "lots"}')
        assert (await limiter.check(CLIENT)).remaining == 4

    @pytest.mark.asyncio
    async def test_store_failure_on_check_allows(self, clock: FakeClock) -> None:
        limiter = AnnounceRateLimiter(FailingKVStore(clock, fail_get=True), clock=clock)
        assert (await limiter.check(CLIENT)).allowed is True


class TestRecord:
    """Tests for AnnounceRateLimiter.record."""

    @pytest.mark.asyncio
    async def test_persists_window_start_key(
        self, limiter: AnnounceRateLimiter, kv: InMemoryKVStore, clock: FakeClock
    ) -> None:
        await limiter.record(CLIENT)
        raw = await kv.get("rate_limit:203.0.113.7")
        assert raw is not None
        assert json.loads(raw) == {"count": 1, "windowStart": clock().timestamp()}

    @pytest.mark.asyncio
    async def test_window_start_fixed_by_first_record(
        self, limiter: AnnounceRateLimiter, clock: FakeClock
    ) -> None:
        first = await limiter.record(CLIENT)
        clock.advance(1800)
        second = await limiter.record(CLIENT)
        assert second.count == 2
        assert second.window_start == first.window_start

    @pytest.mark.asyncio
    async def test_record_after_window_opens_new_window(
        self, limiter: AnnounceRateLimiter, clock: FakeClock
    ) -> None:
        for _ in range(5):
            await limiter.record(CLIENT)
        clock.advance(3601)
        record = await limiter.record(CLIENT)
        assert record.count == 1
        assert record.window_start == clock().timestamp()

    @pytest.mark.asyncio
    async def test_record_expires_with_window(
        self, limiter: AnnounceRateLimiter, kv: InMemoryKVStore, clock: FakeClock
    ) -> None:
        await limiter.record(CLIENT)
        clock.advance(3600)
        assert await kv.get(rate_limit_key(CLIENT)) is None

    @pytest.mark.asyncio
    async def test_store_failure_raises(self, clock: FakeClock) -> None:
        limiter = AnnounceRateLimiter(FailingKVStore(clock, fail_put=True), clock=clock)
        with pytest.raises(StoreUnavailableError):
            await limiter.record(CLIENT)


class TestConstruction:
    """Tests for limiter construction."""

    def test_from_expression(self, kv: InMemoryKVStore) -> None:
        limiter = AnnounceRateLimiter.from_expression(kv, "2/minute")
        assert limiter.max_announces == 2
        assert limiter.window_seconds == 60

    @pytest.mark.parametrize(("max_announces", "window"), [(0, 60), (1, 0)])
    def test_invalid_arguments(
        self, kv: InMemoryKVStore, max_announces: int, window: float
    ) -> None:
        with pytest.raises(ValueError):
            AnnounceRateLimiter(kv, max_announces=max_announces, window_seconds=window)
