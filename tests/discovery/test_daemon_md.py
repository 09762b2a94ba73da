"""Tests for daemon.md parsing, fetching and caching."""

import httpx
import pytest

from daemon_registry.discovery.cache import DocumentCache
from daemon_registry.discovery.daemon_md import DaemonDocumentFetcher, parse_daemon_md
from daemon_registry.errors import DocumentUnavailableError
from tests.factories import VALID_DAEMON_MD, DaemonWeb, FakeClock

URL = "https://x.example.com/"
DOC_URL = "https://x.example.com/daemon.md"


class TestParseDaemonMd:
    """Tests for parse_daemon_md."""

    def test_sections(self) -> None:
        assert parse_daemon_md(VALID_DAEMON_MD) == {
            "ABOUT": "Ada's personal daemon.",
            "MISSION": "Keep the lights on and the tools sharp.",
            "FOCUS": "security, infrastructure",
        }

    def test_preamble_ignored(self) -> None:
        assert parse_daemon_md("# title\n[ABOUT]\nhi") == {"ABOUT": "hi"}

    def test_crlf_line_endings(self) -> None:
        assert parse_daemon_md("[ABOUT]\r\nhi\r\n[TELOS]\r\nship") == {
            "ABOUT": "hi",
            "TELOS": "ship",
        }

    def test_lowercase_brackets_are_body_text(self) -> None:
        assert parse_daemon_md("[ABOUT]\n[not a header]\n") == {"ABOUT": "[not a header]"}

    def test_no_sections(self) -> None:
        assert parse_daemon_md("just text") == {}


class TestDocumentCache:
    """Tests for DocumentCache."""

    def test_fresh_within_ttl(self, clock: FakeClock) -> None:
        cache = DocumentCache(ttl=300, clock=clock)
        cache.set(DOC_URL, {"ABOUT": "hi"})
        clock.advance(299)
        cached = cache.get(DOC_URL)
        assert cached is not None and cached.sections == {"ABOUT": "hi"}

    def test_expired_after_ttl_but_stale_available(self, clock: FakeClock) -> None:
        cache = DocumentCache(ttl=300, clock=clock)
        cache.set(DOC_URL, {"ABOUT": "hi"})
        clock.advance(300)
        assert cache.get(DOC_URL) is None
        stale = cache.get_stale(DOC_URL)
        assert stale is not None and stale.sections == {"ABOUT": "hi"}

    def test_evicts_least_recently_used(self, clock: FakeClock) -> None:
        cache = DocumentCache(max_size=2, clock=clock)
        cache.set("a", {})
        cache.set("b", {})
        cache.get("a")
        cache.set("c", {})
        assert cache.size() == 2
        assert cache.get_stale("b") is None
        assert cache.get_stale("a") is not None

    def test_invalidate_and_clear(self, clock: FakeClock) -> None:
        cache = DocumentCache(clock=clock)
        cache.set("a", {})
        cache.set("b", {})
        cache.invalidate("a")
        assert cache.get_stale("a") is None
        cache.clear_all()
        assert cache.size() == 0


class TestDaemonDocumentFetcher:
    """Tests for DaemonDocumentFetcher.get_sections."""

    @pytest.fixture
    def fetcher(self, web: DaemonWeb, clock: FakeClock) -> DaemonDocumentFetcher:
        return DaemonDocumentFetcher(DocumentCache(clock=clock), transport=web.transport)

    @pytest.mark.asyncio
    async def test_fetches_and_memoizes(
        self, fetcher: DaemonDocumentFetcher, web: DaemonWeb
    ) -> None:
        web.daemon("x.example.com")
        first = await fetcher.get_sections(URL)
        second = await fetcher.get_sections(URL)
        assert first == second
        assert first["ABOUT"] == "Ada's personal daemon."
        assert len(web.requests) == 1

    @pytest.mark.asyncio
    async def test_refetches_after_ttl(
        self, fetcher: DaemonDocumentFetcher, web: DaemonWeb, clock: FakeClock
    ) -> None:
        web.daemon("x.example.com")
        await fetcher.get_sections(URL)
        clock.advance(301)
        web.add("GET", "x.example.com/daemon.md", 200, "[ABOUT]\nupdated")
        assert await fetcher.get_sections(URL) == {"ABOUT": "updated"}
        assert len(web.requests) == 2

    @pytest.mark.asyncio
    async def test_serves_stale_when_refresh_fails(
        self, fetcher: DaemonDocumentFetcher, web: DaemonWeb, clock: FakeClock
    ) -> None:
        web.daemon("x.example.com")
        await fetcher.get_sections(URL)
        clock.advance(301)
        web.add("GET", "x.example.com/daemon.md", error=httpx.ConnectError("connection refused"))
        sections = await fetcher.get_sections(URL)
        assert sections["MISSION"] == "Keep the lights on and the tools sharp."

    @pytest.mark.asyncio
    async def test_raises_when_nothing_cached(self, fetcher: DaemonDocumentFetcher) -> None:
        with pytest.raises(DocumentUnavailableError) as exc_info:
            await fetcher.get_sections(URL)
        assert exc_info.value.url == DOC_URL
        assert exc_info.value.reason == "HTTP 404"

    @pytest.mark.asyncio
    async def test_returned_sections_are_copies(
        self, fetcher: DaemonDocumentFetcher, web: DaemonWeb
    ) -> None:
        web.daemon("x.example.com")
        sections = await fetcher.get_sections(URL)
        sections["ABOUT"] = "changed"
        assert (await fetcher.get_sections(URL))["ABOUT"] == "Ada's personal daemon."
