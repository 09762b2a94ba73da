"""Fetching and parsing daemon.md documents into named sections.

A daemon document is plain text split by header lines of the form
``[SECTION_NAME]`` (upper-case letters and underscores). Text before the first
header is ignored; each section's body is stripped.
"""

from __future__ import annotations

import re

import httpx

from daemon_registry.discovery.cache import DocumentCache
from daemon_registry.discovery.http import (
    DEFAULT_TIMEOUT_SECONDS,
    OUTBOUND_ERRORS,
    build_client,
    describe_error,
)
from daemon_registry.discovery.verification import daemon_document_url
from daemon_registry.errors import DocumentUnavailableError
from daemon_registry.observability import get_logger

logger = get_logger(__name__)

_SECTION_HEADER = re.compile(r"^\[([A-Z_]+)\]$")


def parse_daemon_md(content: str) -> dict[str, str]:
    """Split daemon.md *content* into ``{SECTION: body}``.

    Example:
        >>> parse_daemon_md("[ABOUT]\\nHello\\n\\n[MISSION]\\nShip it")
        {'ABOUT': 'Hello', 'MISSION': 'Ship it'}
    """
    sections: dict[str, str] = {}
    current: str | None = None
    lines: list[str] = []
    for line in content.split("\n"):
        match = _SECTION_HEADER.match(line.rstrip("\r"))
        if match:
            if current is not None:
                sections[current] = "\n".join(lines).strip()
            current = match.group(1)
            lines = []
        elif current is not None:
            lines.append(line)
    if current is not None:
        sections[current] = "\n".join(lines).strip()
    return sections


class DaemonDocumentFetcher:
    """Fetches daemon.md sections through a DocumentCache.

    A fresh cached copy is returned without network access. When a refresh
    fails the stale copy is served; with nothing cached the failure raises
    DocumentUnavailableError.
    """

    def __init__(
        self,
        cache: DocumentCache | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cache = cache or DocumentCache()
        self._timeout = timeout
        self._transport = transport

    @property
    def cache(self) -> DocumentCache:
        return self._cache

    async def _fetch(self, document_url: str) -> str:
        try:
            async with build_client(self._timeout, self._transport) as client:
                response = await client.get(document_url)
        except OUTBOUND_ERRORS as e:
            raise DocumentUnavailableError(document_url, describe_error(e)) from e
        if not response.is_success:
            raise DocumentUnavailableError(document_url, f"HTTP {response.status_code}")
        return response.text

    async def get_sections(self, url: str) -> dict[str, str]:
        """Return the parsed sections of ``<url>daemon.md``.

        Raises:
            DocumentUnavailableError: If the fetch fails and nothing is cached.
        """
        document_url = daemon_document_url(url)
        cached = self._cache.get(document_url)
        if cached is not None:
            return dict(cached.sections)

        try:
            content = await self._fetch(document_url)
        except DocumentUnavailableError as e:
            stale = self._cache.get_stale(document_url)
            if stale is None:
                raise
            logger.warning("registry.document.stale_served", url=document_url, error=e.reason)
            return dict(stale.sections)

        document = self._cache.set(document_url, parse_daemon_md(content))
        return dict(document.sections)
