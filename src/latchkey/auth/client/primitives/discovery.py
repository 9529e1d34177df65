"""OAuth 2.1 server discovery primitive.

Tries a prioritized list of well-known metadata locations (RFC 8414 and
OpenID Connect Discovery, plus common non-standard variants) on the issuer
origin until one yields usable endpoint metadata.
"""

from __future__ import annotations

import logging
import time
from urllib.parse import urljoin

import httpx
from pydantic import ValidationError

from latchkey.auth.client.models.discovery import AuthorizationServerMetadata
from latchkey.auth.client.models.errors import (
    DiscoveryError,
    DiscoveryExhaustedError,
)

logger = logging.getLogger(__name__)

WELL_KNOWN_PATHS = (
    "/.well-known/oauth-authorization-server",
    "/.well-known/openid_configuration",
    "/oauth/.well-known/oauth-authorization-server",
    "/.well-known/oauth_authorization_server",  # Some services use underscore
)


class OAuth2Discovery:
    """Handles OAuth 2.1 server discovery for MCP authentication.

    Candidates are tried strictly one after another in priority order and
    the first valid document wins. A failed candidate (HTTP error status,
    network error, invalid JSON, missing endpoints) never aborts discovery;
    it only moves on to the next path.
    """

    def __init__(self, timeout: float = 30.0):
        """Initialize OAuth discovery.

        Args:
            timeout: HTTP request timeout in seconds
        """
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=timeout)

    def build_discovery_paths(self, custom_path: str | None = None) -> list[str]:
        """Build ordered list of discovery paths to try.

        A custom path, when configured, is tried first.
        """
        paths = []
        if custom_path:
            paths.append(custom_path)
        paths.extend(WELL_KNOWN_PATHS)
        return paths

    async def discover(
        self, oauth_host: str, custom_path: str | None = None
    ) -> AuthorizationServerMetadata:
        """Discover OAuth endpoints for an issuer origin.

        Args:
            oauth_host: Issuer origin (``scheme://host[:port]``)
            custom_path: Optional non-standard discovery path to try first

        Returns:
            Metadata from the first candidate that yields a valid document

        Raises:
            DiscoveryExhaustedError: If every candidate fails
        """
        paths = self.build_discovery_paths(custom_path)
        attempted: list[str] = []
        last_error: Exception | None = None

        discovery_start = time.monotonic()
        logger.info(f"Starting OAuth discovery for host: {oauth_host}")

        for attempt, path in enumerate(paths, start=1):
            attempted.append(path)
            url = urljoin(oauth_host, path)
            path_start = time.monotonic()
            logger.debug(f"Attempt {attempt}/{len(paths)}: trying discovery at {url}")

            try:
                response = await self._http_client.get(url)
            except httpx.RequestError as e:
                logger.warning(
                    f"Discovery request to {url} failed in "
                    f"{_elapsed_ms(path_start)}ms: {e}"
                )
                last_error = e
                continue

            if not 200 <= response.status_code < 300:
                logger.warning(
                    f"HTTP {response.status_code} from {url} in "
                    f"{_elapsed_ms(path_start)}ms"
                )
                last_error = DiscoveryError(f"HTTP {response.status_code} from {url}")
                continue

            try:
                metadata = AuthorizationServerMetadata.model_validate_json(
                    response.text
                )
            except ValidationError as e:
                logger.warning(f"Invalid OAuth config at {url}: {e}")
                last_error = e
                continue

            logger.info(
                f"Discovered OAuth endpoints at {url} in "
                f"{_elapsed_ms(discovery_start)}ms (attempt {attempt}/{len(paths)})"
            )
            logger.debug(
                f"Endpoints: auth={metadata.authorization_endpoint}, "
                f"token={metadata.token_endpoint}, "
                f"registration={metadata.registration_endpoint}"
            )
            return metadata

        raise DiscoveryExhaustedError(oauth_host, attempted, last_error)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http_client.aclose()


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
