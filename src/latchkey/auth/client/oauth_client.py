"""Complete OAuth 2.1 client orchestration for MCP authentication.

Coordinates resource resolution, discovery, registration, authorization,
and token exchange to obtain one access token per call.
"""

from __future__ import annotations

import logging

from latchkey.auth.client.models.config import ServiceConfig
from latchkey.auth.client.models.flow import FlowState
from latchkey.auth.client.primitives.discovery import OAuth2Discovery
from latchkey.auth.client.primitives.resource import canonical_resource_uri
from latchkey.auth.client.services.browser import BrowserLauncher
from latchkey.auth.client.services.flow import (
    DEFAULT_CALLBACK_TIMEOUT,
    AuthorizationFlow,
)
from latchkey.auth.client.services.registration import OAuth2Registration
from latchkey.auth.client.services.tokens import OAuth2TokenManager

logger = logging.getLogger(__name__)


class OAuth2Client:
    """Complete OAuth 2.1 client for MCP authentication.

    Authenticates exactly once per :meth:`authenticate` call; nothing is
    cached between calls and every attempt gets fresh state, verifier and
    callback listener.
    """

    def __init__(
        self,
        browser: BrowserLauncher | None = None,
        timeout: float = 30.0,
        callback_timeout: float = DEFAULT_CALLBACK_TIMEOUT,
    ):
        """Initialize OAuth client.

        Args:
            browser: Launcher used to send the user to the authorization URL
            timeout: HTTP request timeout
            callback_timeout: Seconds to wait for the authorization redirect
        """
        self.browser = browser
        self.callback_timeout = callback_timeout

        # Initialize service components
        self.discovery = OAuth2Discovery(timeout=timeout)
        self.registration = OAuth2Registration(timeout=timeout)
        self.token_manager = OAuth2TokenManager(timeout=timeout)

    async def authenticate(self, config: ServiceConfig, target_url: str) -> str:
        """Authenticate with an MCP server and return an access token.

        Performs the complete OAuth flow:
        1. Resolve the canonical resource URI
        2. Discover OAuth endpoints
        3. Register a public client dynamically
        4. Run the browser authorization with a local callback
        5. Exchange the code for tokens

        Raises:
            OAuth2Error: The first stage failure, unchanged
        """
        logger.info(f"Starting OAuth authentication for {target_url}")

        resource = canonical_resource_uri(target_url)
        logger.info(f"Using resource URI: {resource}")

        metadata = await self.discovery.discover(
            config.oauth_host, config.discovery_path
        )

        credentials = await self.registration.register_client(metadata, config)

        flow = AuthorizationFlow(
            FlowState.create(metadata, credentials.client_id, config.redirect_uri),
            self.token_manager,
            browser=self.browser,
            callback_timeout=self.callback_timeout,
        )
        token_data = await flow.execute(resource)

        logger.info("OAuth authentication successful!")
        return token_data.access_token

    async def close(self) -> None:
        """Close all service connections."""
        await self.discovery.close()
        await self.registration.close()
        await self.token_manager.close()

    async def __aenter__(self) -> OAuth2Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def authenticate(
    config: ServiceConfig,
    target_url: str,
    browser: BrowserLauncher | None = None,
    callback_timeout: float = DEFAULT_CALLBACK_TIMEOUT,
) -> str:
    """Perform one OAuth flow for a service and return the access token."""
    async with OAuth2Client(
        browser=browser, callback_timeout=callback_timeout
    ) as client:
        return await client.authenticate(config, target_url)
