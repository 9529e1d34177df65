"""OAuth 2.1 dynamic client registration service.

Implements RFC 7591 (OAuth 2.0 Dynamic Client Registration Protocol)
to register an ephemeral public client for one authentication attempt.
"""

from __future__ import annotations

import logging
import time

import httpx
from pydantic import ValidationError

from latchkey.auth.client.models.config import ServiceConfig
from latchkey.auth.client.models.discovery import AuthorizationServerMetadata
from latchkey.auth.client.models.errors import (
    NoRegistrationEndpointError,
    RegistrationFailedError,
)
from latchkey.auth.client.models.registration import (
    ClientCredentials,
    ClientMetadata,
)

logger = logging.getLogger(__name__)


class OAuth2Registration:
    """Handles OAuth 2.1 dynamic client registration for MCP authentication.

    Always registers a public client (``token_endpoint_auth_method="none"``).
    A client secret returned by the server is parsed and otherwise ignored.
    """

    def __init__(self, timeout: float = 30.0):
        """Initialize OAuth registration.

        Args:
            timeout: HTTP request timeout in seconds
        """
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=timeout)

    def build_client_metadata(self, config: ServiceConfig) -> ClientMetadata:
        """Build the registration request body for a service configuration."""
        return ClientMetadata(
            redirect_uris=[config.redirect_uri],
            client_name=config.client_name,
            client_uri=config.client_uri,
        )

    async def register_client(
        self,
        metadata: AuthorizationServerMetadata,
        config: ServiceConfig,
    ) -> ClientCredentials:
        """Register a new public client with the authorization server.

        Args:
            metadata: Discovered server metadata
            config: Service configuration supplying redirect URI and client info

        Returns:
            Client credentials; only ``client_id`` is used afterwards

        Raises:
            NoRegistrationEndpointError: If the server has no registration endpoint
            RegistrationFailedError: If the request fails or the response is unusable
        """
        registration_endpoint = metadata.registration_endpoint
        if not registration_endpoint:
            raise NoRegistrationEndpointError(config.oauth_host)

        try:
            client_metadata = self.build_client_metadata(config)
        except ValidationError as e:
            raise RegistrationFailedError(f"Invalid client metadata: {e}") from e
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        registration_start = time.monotonic()
        logger.info(f"Registering dynamic client at {registration_endpoint}")
        logger.debug(f"Registration request: {client_metadata}")

        try:
            response = await self._http_client.post(
                registration_endpoint,
                json=client_metadata.model_dump(mode="json"),
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise RegistrationFailedError(
                f"HTTP error during registration: {e}"
            ) from e

        elapsed_ms = int((time.monotonic() - registration_start) * 1000)

        if not 200 <= response.status_code < 300:
            logger.error(
                f"Client registration failed in {elapsed_ms}ms: "
                f"{response.status_code} - {response.text}"
            )
            raise RegistrationFailedError(
                f"Failed to register client: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            credentials = ClientCredentials.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RegistrationFailedError(
                f"Invalid registration response format: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        logger.info(
            f"Client registered in {elapsed_ms}ms with ID: {credentials.client_id}"
        )
        return credentials

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
