"""Shared outbound HTTP settings for daemon checks.

Every daemon check opens its own short-lived ``httpx.AsyncClient`` bounded by an
explicit timeout; tests inject an ``httpx.MockTransport``.
"""

from __future__ import annotations

from typing import Any

import httpx

# Per-call timeout for verification, health checks and capability discovery.
DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "DaemonRegistry/1.0"


def build_client(
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient with the registry User-Agent and a hard timeout."""
    client_kwargs: dict[str, Any] = {
        "timeout": httpx.Timeout(timeout),
        "headers": {"User-Agent": USER_AGENT},
        "follow_redirects": True,
    }
    if transport is not None:
        client_kwargs["transport"] = transport
    return httpx.AsyncClient(**client_kwargs)


def describe_error(error: Exception) -> str:
    """Human-readable message for a transport error (some httpx errors stringify empty)."""
    return str(error) or error.__class__.__name__


# Errors an outbound check reduces to a failed outcome instead of propagating.
OUTBOUND_ERRORS: tuple[type[Exception], ...] = (httpx.HTTPError, httpx.InvalidURL)
