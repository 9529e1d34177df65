"""Per-attempt service configuration for OAuth authentication."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from latchkey.auth.client.primitives.resource import (
    canonical_resource_uri,
    issuer_origin,
)

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8020/"
DEFAULT_CLIENT_NAME = "Latchkey MCP Client"
DEFAULT_CLIENT_URI = "https://github.com/latchkey-dev/latchkey"


@dataclass(frozen=True)
class ServiceConfig:
    """OAuth configuration for one MCP server.

    Built once from the target URL and immutable for the attempt.
    """

    oauth_host: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    client_name: str = DEFAULT_CLIENT_NAME
    client_uri: str = DEFAULT_CLIENT_URI
    discovery_path: str | None = None

    @classmethod
    def from_target(
        cls, target_url: str, discovery_path: str | None = None
    ) -> ServiceConfig:
        """Create a configuration from an MCP endpoint URL.

        The issuer origin is the target's scheme, host and port; the path is
        discarded for discovery.

        Raises:
            InvalidTargetError: If the URL cannot be parsed or has no host
        """
        return cls(oauth_host=issuer_origin(target_url), discovery_path=discovery_path)

    def with_custom_discovery(self, discovery_path: str) -> ServiceConfig:
        """Return a copy that tries ``discovery_path`` before the well-known paths."""
        return dataclasses.replace(self, discovery_path=discovery_path)

    def with_redirect_uri(self, redirect_uri: str) -> ServiceConfig:
        """Return a copy with a different redirect URI."""
        return dataclasses.replace(self, redirect_uri=redirect_uri)

    @staticmethod
    def canonical_resource_uri(target_url: str) -> str:
        """Get the canonical resource URI (RFC 8707) for the target URL."""
        return canonical_resource_uri(target_url)
