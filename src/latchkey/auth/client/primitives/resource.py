"""Resource resolution for MCP server URLs.

Derives the issuer origin used for discovery and the canonical resource
URI used as the RFC 8707 ``resource`` parameter.
"""

from __future__ import annotations

from urllib.parse import SplitResult, urlsplit

from latchkey.auth.client.models.errors import InvalidTargetError

DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


def _parse_target(url: str) -> tuple[SplitResult, str, int | None]:
    """Parse a target URL into (parts, lower-cased host, explicit port).

    Default ports for the scheme are dropped, so ``https://host:443`` and
    ``https://host`` resolve to the same values.
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError as e:
        raise InvalidTargetError(url, str(e)) from e

    if not parts.scheme or not parts.hostname:
        raise InvalidTargetError(url)

    scheme = parts.scheme.lower()
    if port is not None and DEFAULT_PORTS.get(scheme) == port:
        port = None

    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"  # IPv6 literal

    return parts, host, port


def _origin(scheme: str, host: str, port: int | None) -> str:
    origin = f"{scheme.lower()}://{host}"
    if port is not None:
        origin += f":{port}"
    return origin


def issuer_origin(url: str) -> str:
    """Return ``scheme://host[:port]`` for a target URL, without any path.

    Raises:
        InvalidTargetError: If the URL cannot be parsed or has no host
    """
    parts, host, port = _parse_target(url)
    return _origin(parts.scheme, host, port)


def canonical_resource_uri(url: str) -> str:
    """Return the canonical resource URI (RFC 8707) for a target URL.

    Scheme and host are lower-cased, the port is kept only when given
    explicitly, and the path is appended unless it is empty or ``/``.
    Query and fragment are dropped.

    Raises:
        InvalidTargetError: If the URL cannot be parsed or has no host
    """
    parts, host, port = _parse_target(url)
    canonical = _origin(parts.scheme, host, port)
    if parts.path and parts.path != "/":
        canonical += parts.path
    return canonical
