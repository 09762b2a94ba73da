"""Health engine: per-daemon reachability tier and jittered scheduling.

Three requests run concurrently for each check and are joined before the status
is resolved:

- plain GET of the daemon URL (web reachability)
- JSON-RPC ``tools/list`` POST (MCP capability)
- daemon.md verification (legacy document check)

Resolution, in priority order: MCP call or verification succeeds -> ``mcp``;
plain GET succeeds -> ``web``; otherwise ``offline``. Each request is bounded by
its own timeout and reduced to a boolean, so one slow request cannot hold the
others past that timeout and nothing escapes as an exception.

Scheduling: :func:`check_minute` maps a URL to a fixed minute-of-hour. A
trigger firing every minute checks only the entries whose slot matches, which
spreads hourly checks across 60 slots without coordination and keeps each
URL's slot stable across redeploys.
"""

from __future__ import annotations

import asyncio

import httpx

from daemon_registry.clock import Clock, utc_now
from daemon_registry.discovery.http import (
    DEFAULT_TIMEOUT_SECONDS,
    OUTBOUND_ERRORS,
    build_client,
    describe_error,
)
from daemon_registry.discovery.protocol import JSONRPCReply, tools_list_request
from daemon_registry.discovery.verification import Verifier
from daemon_registry.models.entities import DaemonEntry, HealthUpdate
from daemon_registry.models.enums import DaemonStatus
from daemon_registry.observability import get_logger

logger = get_logger(__name__)

HEALTH_CHECK_INTERVAL_MINUTES = 60

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _string_hash(value: str) -> int:
    """32-bit ``h = h * 31 + c`` hash over UTF-16 code units, as a signed int."""
    h = 0
    encoded = value.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = (h * 31 + code_unit) & _INT32_MASK
    return h - (1 << 32) if h & _INT32_SIGN else h


def check_minute(url: str) -> int:
    """Deterministic minute-of-hour (0-59) at which *url* is due for a health check."""
    return abs(_string_hash(url)) % HEALTH_CHECK_INTERVAL_MINUTES


def resolve_status(*, mcp_reachable: bool, verified: bool, web_reachable: bool) -> DaemonStatus:
    if mcp_reachable or verified:
        return DaemonStatus.MCP
    if web_reachable:
        return DaemonStatus.WEB
    return DaemonStatus.OFFLINE


class HealthEngine:
    """Runs the three health checks for one daemon and resolves its status."""

    def __init__(
        self,
        *,
        verifier: Verifier | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._verifier = verifier or Verifier(timeout=timeout, transport=transport)
        self._clock = clock

    async def check_web_reachable(self, url: str) -> bool:
        try:
            async with build_client(self._timeout, self._transport) as client:
                response = await client.get(url)
                return response.is_success
        except OUTBOUND_ERRORS as e:
            logger.debug("registry.health.web_unreachable", url=url, error=describe_error(e))
            return False

    async def check_mcp_capability(self, url: str) -> bool:
        """True when *url* answers ``tools/list`` with a ``result.tools`` array."""
        endpoint = url[:-1] if url.endswith("/") else url
        try:
            async with build_client(self._timeout, self._transport) as client:
                response = await client.post(endpoint, json=tools_list_request())
                if not response.is_success:
                    return False
                reply = JSONRPCReply.model_validate(response.json())
        except OUTBOUND_ERRORS as e:
            logger.debug("registry.health.mcp_unreachable", url=endpoint, error=describe_error(e))
            return False
        except ValueError:
            # JSONDecodeError, UnicodeDecodeError and ValidationError
            return False
        return reply.result is not None and isinstance(reply.result.get("tools"), list)

    async def health_check(self, entry: DaemonEntry) -> HealthUpdate:
        """Check *entry* and return its new health fields; ``last_checked`` is always set."""
        now = self._clock()
        web_reachable, mcp_reachable, verification = await asyncio.gather(
            self.check_web_reachable(entry.url),
            self.check_mcp_capability(entry.url),
            self._verifier.verify(entry.url),
        )
        status = resolve_status(
            mcp_reachable=mcp_reachable,
            verified=verification.verified,
            web_reachable=web_reachable,
        )
        logger.info(
            "registry.health.checked",
            daemon_url=entry.url,
            status=status.value,
            web=web_reachable,
            mcp=mcp_reachable,
            verified=verification.verified,
        )
        return HealthUpdate(last_checked=now, status=status, healthy=status.is_healthy())
