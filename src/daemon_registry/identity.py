"""Stable, namespaced daemon identifiers.

A daemon ID has the form ``<reversed-domain>.<identifier>``::

    https://daemon.saltedkeys.io/        owner "Swift" -> io.saltedkeys.daemon.swift
    https://example.com/ada/             owner "Ada"   -> com.example.ada
    https://x.example.com/               no owner      -> com.example.x.daemon

Derivation is pure and deterministic: no I/O, same input, same ID.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from daemon_registry.errors import InvalidDaemonURLError

FALLBACK_IDENTIFIER = "daemon"
UNKNOWN_PREFIX = "unknown"
MAX_OWNER_IDENTIFIER_LENGTH = 20
MAX_UNKNOWN_SUFFIX_LENGTH = 32
ALLOWED_SCHEMES = frozenset({"http", "https"})

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_ALNUM_ANY_CASE = re.compile(r"[^a-zA-Z0-9]")


def parse_daemon_url(url: str) -> tuple[str, str]:
    """Split *url* into (hostname, path), raising if it is not an absolute http(s) URL.

    Raises:
        InvalidDaemonURLError: On a missing scheme or host, a non-http(s) scheme,
            or a URL urllib refuses to split (e.g. a bad port or IPv6 literal).
    """
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
        _ = parts.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise InvalidDaemonURLError(url, str(e)) from e
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidDaemonURLError(url, "scheme must be http or https")
    if not hostname:
        raise InvalidDaemonURLError(url, "missing host")
    return hostname, parts.path


def _owner_identifier(owner: str | None) -> str:
    if not owner:
        return ""
    return _NON_ALNUM.sub("", owner.lower())[:MAX_OWNER_IDENTIFIER_LENGTH]


def derive_daemon_id(url: str, owner: str | None = None) -> str:
    """Derive a namespaced ID from a daemon URL and optional owner name.

    The identifier segment is, in order of preference: the first non-empty path
    segment, the owner name lowercased with everything but ``[a-z0-9]`` removed
    (at most 20 characters), or ``"daemon"``. URLs that cannot be parsed yield
    ``unknown.<first 32 alphanumerics of the url>``.

    Example:
        >>> derive_daemon_id("https://x.example.com/", "Ada")
        'com.example.x.ada'
        >>> derive_daemon_id("not a url")
        'unknown.notaurl'
    """
    try:
        hostname, path = parse_daemon_url(url)
    except InvalidDaemonURLError:
        suffix = _NON_ALNUM_ANY_CASE.sub("", url)[:MAX_UNKNOWN_SUFFIX_LENGTH]
        return f"{UNKNOWN_PREFIX}.{suffix}"

    labels = [label for label in hostname.split(".") if label]
    labels.reverse()

    path_segment = next((seg for seg in path.split("/") if seg), "")
    identifier = path_segment or _owner_identifier(owner) or FALLBACK_IDENTIFIER

    return ".".join([*labels, identifier])
