"""daemon.md verification.

A daemon is verified when ``<url>daemon.md`` answers 2xx with a body that
looks like a daemon document: at least MIN_DOCUMENT_LENGTH characters and at
least one ``[SECTION]`` header marker. Verification fails closed and never
raises; transport errors come back as ``verified=False`` with the error text.
"""

from __future__ import annotations

import httpx

from daemon_registry.discovery.http import (
    DEFAULT_TIMEOUT_SECONDS,
    OUTBOUND_ERRORS,
    build_client,
    describe_error,
)
from daemon_registry.models.results import VerificationResult
from daemon_registry.observability import get_logger

logger = get_logger(__name__)

DAEMON_DOCUMENT_NAME = "daemon.md"
MIN_DOCUMENT_LENGTH = 50
SECTION_MARKER = "["


def daemon_document_url(url: str) -> str:
    """``<url>/daemon.md`` with exactly one slash before the document name."""
    base = url if url.endswith("/") else f"{url}/"
    return f"{base}{DAEMON_DOCUMENT_NAME}"


def looks_like_daemon_document(content: str) -> bool:
    return SECTION_MARKER in content and len(content) >= MIN_DOCUMENT_LENGTH


class Verifier:
    """Fetches and sanity-checks a daemon's daemon.md.

    Example:
        >>> verifier = Verifier(timeout=5.0)
        >>> result = await verifier.verify("https://x.example.com/")
        >>> result.verified
        True
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def verify(self, url: str) -> VerificationResult:
        document_url = daemon_document_url(url)
        try:
            async with build_client(self._timeout, self._transport) as client:
                response = await client.get(document_url)
                if not response.is_success:
                    return VerificationResult(
                        verified=False, error=f"HTTP {response.status_code}"
                    )
                content = response.text
        except OUTBOUND_ERRORS as e:
            logger.debug("registry.verify.unreachable", url=document_url, error=describe_error(e))
            return VerificationResult(verified=False, error=describe_error(e))

        if not looks_like_daemon_document(content):
            return VerificationResult(verified=False, error="Invalid daemon.md format")
        return VerificationResult(verified=True)
