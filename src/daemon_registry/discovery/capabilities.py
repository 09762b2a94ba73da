"""On-demand capability discovery via JSON-RPC ``tools/list``."""

from __future__ import annotations

import json

import httpx
from pydantic import ValidationError

from daemon_registry.clock import Clock, utc_now
from daemon_registry.discovery.http import (
    DEFAULT_TIMEOUT_SECONDS,
    OUTBOUND_ERRORS,
    build_client,
    describe_error,
)
from daemon_registry.discovery.protocol import JSONRPCReply, ListToolsResult, tools_list_request
from daemon_registry.models.entities import DaemonCapabilities, ToolSummary
from daemon_registry.observability import get_logger

logger = get_logger(__name__)


class CapabilityDiscovery:
    """Asks a daemon which tools it exposes.

    The request goes to ``mcp_url`` when given, else to ``url``. Any HTTP
    failure, protocol error payload or transport exception is reported as
    ``supports_mcp=False`` with an ``error`` string; nothing is raised.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._clock = clock

    async def discover(self, url: str, mcp_url: str | None = None) -> DaemonCapabilities:
        target = mcp_url or url
        checked_at = self._clock()

        def failed(error: str) -> DaemonCapabilities:
            logger.info("registry.capabilities.unsupported", daemon_url=url, error=error)
            return DaemonCapabilities(
                url=url, mcp_url=mcp_url, supports_mcp=False, error=error, checked_at=checked_at
            )

        try:
            async with build_client(self._timeout, self._transport) as client:
                response = await client.post(target, json=tools_list_request())
                if not response.is_success:
                    return failed(f"HTTP {response.status_code}")
                payload = response.json()
        except OUTBOUND_ERRORS as e:
            return failed(describe_error(e))
        except json.JSONDecodeError as e:
            return failed(f"Invalid JSON response: {e.msg}")
        except UnicodeDecodeError as e:
            return failed(f"Invalid JSON response: {e.reason}")

        try:
            reply = JSONRPCReply.model_validate(payload)
        except ValidationError:
            return failed("Invalid JSON-RPC response")
        if reply.error is not None:
            return failed(reply.error.message)

        tools: list[ToolSummary] = []
        if reply.result is not None and reply.result.get("tools") is not None:
            try:
                listed = ListToolsResult.model_validate(reply.result)
            except ValidationError:
                return failed("Invalid tools/list result")
            tools = [ToolSummary(name=t.name, description=t.description) for t in listed.tools]

        return DaemonCapabilities(
            url=url,
            mcp_url=mcp_url,
            supports_mcp=True,
            tools=tools,
            checked_at=checked_at,
        )
