"""Tests for capability discovery via tools/list."""

import httpx
import pytest

from daemon_registry.discovery.capabilities import CapabilityDiscovery
from tests.factories import DaemonWeb, FakeClock

URL = "https://x.example.com/"


@pytest.fixture
def discovery(web: DaemonWeb, clock: FakeClock) -> CapabilityDiscovery:
    return CapabilityDiscovery(transport=web.transport, clock=clock)


class TestCapabilityDiscovery:
    """Tests for CapabilityDiscovery.discover."""

    @pytest.mark.asyncio
    async def test_lists_tools(
        self, discovery: CapabilityDiscovery, web: DaemonWeb, clock: FakeClock
    ) -> None:
        web.daemon("x.example.com")
        caps = await discovery.discover(URL)
        assert caps.supports_mcp is True
        assert caps.error is None
        assert [t.name for t in caps.tools or []] == ["get_about", "get_mission"]
        assert caps.tools is not None and caps.tools[0].description == "About the owner"
        assert caps.checked_at == clock()
        assert caps.url == URL
        assert caps.mcp_url is None

    @pytest.mark.asyncio
    async def test_mcp_url_override_is_queried(
        self, discovery: CapabilityDiscovery, web: DaemonWeb
    ) -> None:
        web.add(
            "POST",
            "api.example.com/mcp",
            200,
            {"jsonrpc": "2.0", "id": 1, "result": {"tools": [{"name": "ping"}]}},
        )
        caps = await discovery.discover(URL, "https://api.example.com/mcp")
        assert caps.supports_mcp is True
        assert caps.mcp_url == "https://api.example.com/mcp"
        assert [r.url.host for r in web.requests] == ["api.example.com"]
        assert caps.tools is not None and caps.tools[0].description == ""

    @pytest.mark.asyncio
    async def test_missing_tools_is_empty_list(
        self, discovery: CapabilityDiscovery, web: DaemonWeb
    ) -> None:
        web.add("POST", "x.example.com/", 200, {"jsonrpc": "2.0", "id": 1, "result": {}})
        caps = await discovery.discover(URL)
        assert caps.supports_mcp is True
        assert caps.tools == []

    @pytest.mark.asyncio
    async def test_http_error(self, discovery: CapabilityDiscovery, web: DaemonWeb) -> None:
        web.add("POST", "x.example.com/", 500, "oops")
        caps = await discovery.discover(URL)
        assert caps.supports_mcp is False
        assert caps.error == "HTTP 500"
        assert caps.tools is None

    @pytest.mark.asyncio
    async def test_rpc_error_message(self, discovery: CapabilityDiscovery, web: DaemonWeb) -> None:
        web.add(
            "POST",
            "x.example.com/",
            200,
            {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}},
        )
        caps = await discovery.discover(URL)
        assert caps.supports_mcp is False
        assert caps.error == "Method not found"

    @pytest.mark.asyncio
    async def test_invalid_json(self, discovery: CapabilityDiscovery, web: DaemonWeb) -> None:
        web.add("POST", "x.example.com/", 200, "<html>")
        caps = await discovery.discover(URL)
        assert caps.supports_mcp is False
        assert caps.error is not None and caps.error.startswith("Invalid JSON response")

    @pytest.mark.asyncio
    async def test_reply_not_utf8(self, discovery: CapabilityDiscovery, web: DaemonWeb) -> None:
        web.add("POST", "x.example.com/", 200, b'{"result": "\xff\xfe"}')
        caps = await discovery.discover(URL)
        assert caps.supports_mcp is False
        assert caps.error is not None and caps.error.startswith("Invalid JSON response")

    @pytest.mark.asyncio
    async def test_non_object_reply(self, discovery: CapabilityDiscovery, web: DaemonWeb) -> None:
        web.add("POST", "x.example.com/", 200, [1, 2, 3])
        caps = await discovery.discover(URL)
        assert caps.error == "Invalid JSON-RPC response"

    @pytest.mark.asyncio
    async def test_malformed_tools(self, discovery: CapabilityDiscovery, web: DaemonWeb) -> None:
        web.add(
            "POST",
            "x.example.com/",
            200,
            {"jsonrpc": "2.0", "id": 1, "result": {"tools": [{"description": "nameless"}]}},
        )
        caps = await discovery.discover(URL)
        assert caps.supports_mcp is False
        assert caps.error == "Invalid tools/list result"

    @pytest.mark.asyncio
    async def test_transport_error(self, discovery: CapabilityDiscovery, web: DaemonWeb) -> None:
        web.add("POST", "x.example.com/", error=httpx.ConnectError("connection refused"))
        caps = await discovery.discover(URL)
        assert caps.supports_mcp is False
        assert caps.error == "connection refused"
