"""URL canonicalization and origin helpers.

Every function here is best-effort: malformed input never raises, it is
returned as-is (or treated as foreign, for origin checks).
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit, urlunsplit

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _netloc(scheme: str, host: str, port: Optional[int]) -> str:
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return host
    return f"{host}:{port}"


def normalize_url(url: str) -> str:
    """Canonicalize ``url`` for deduplication.

    Drops the fragment, lowercases scheme and host, removes a default port,
    and strips the trailing slash from any path other than the root. The
    query string is kept verbatim since it may select different content.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return url
    if not parts.scheme or not parts.hostname:
        return url

    scheme = parts.scheme.lower()
    netloc = _netloc(scheme, parts.hostname, port)
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or "/"
    if path != "/":
        path = path.rstrip("/") or "/"
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def origin_of(url: str) -> Optional[str]:
    """Return ``scheme://host[:port]`` for an absolute URL, else None."""
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    scheme = parts.scheme.lower()
    return f"{scheme}://{_netloc(scheme, parts.hostname, port)}"


def is_same_origin(url: str, origin: str) -> bool:
    """Compare scheme, host and port of ``url`` against ``origin``."""
    candidate = origin_of(url)
    if candidate is None:
        return False
    return candidate == (origin_of(origin) or origin)


def path_of(url: str) -> str:
    """Return the path component of ``url``, or ``url`` itself when unparseable."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    return parts.path or "/"
