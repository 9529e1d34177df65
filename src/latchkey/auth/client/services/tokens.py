"""OAuth 2.1 token exchange service.

Implements the RFC 6749 authorization code grant with PKCE (RFC 7636)
and Resource Indicators (RFC 8707).
"""

from __future__ import annotations

import logging
import time

import httpx
from pydantic import ValidationError

from latchkey.auth.client.models.errors import (
    MalformedTokenResponseError,
    TokenExchangeFailedError,
)
from latchkey.auth.client.models.tokens import TokenData, TokenRequest

logger = logging.getLogger(__name__)


class OAuth2TokenManager:
    """Exchanges authorization codes for access tokens.

    Uses application/x-www-form-urlencoded encoding as required by OAuth 2.1.
    Failures are reported once; the exchange is never retried.
    """

    def __init__(self, timeout: float = 30.0):
        """Initialize OAuth token manager.

        Args:
            timeout: HTTP request timeout in seconds
        """
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def exchange_code_for_token(self, token_request: TokenRequest) -> TokenData:
        """Exchange authorization code for access token.

        Args:
            token_request: Token exchange request parameters

        Returns:
            TokenData: Access token and optional refresh token

        Raises:
            TokenExchangeFailedError: On transport failure or a non-2xx response
            MalformedTokenResponseError: If a 2xx response lacks an access token
        """
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        form_data = token_request.to_form_data()

        # Log request details (without sensitive data)
        logger.info(f"Starting token exchange at {token_request.token_endpoint}")
        logger.debug(
            f"Token request: client_id={form_data['client_id']}, "
            f"resource={form_data['resource']}"
        )

        token_start = time.monotonic()
        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                data=form_data,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise TokenExchangeFailedError(
                f"HTTP error during token exchange: {e}"
            ) from e

        elapsed_ms = int((time.monotonic() - token_start) * 1000)

        if not 200 <= response.status_code < 300:
            logger.error(f"Token exchange failed in {elapsed_ms}ms: {response.text}")
            raise TokenExchangeFailedError(
                f"Failed to exchange code for token: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        token_data = self._parse_token_response(response)
        logger.info(
            f"Token exchange successful in {elapsed_ms}ms, "
            f"has_refresh_token: {token_data.refresh_token is not None}"
        )
        return token_data

    def _parse_token_response(self, response: httpx.Response) -> TokenData:
        """Parse a 2xx token endpoint response (RFC 6749 Section 5.1).

        Raises:
            MalformedTokenResponseError: If the body is not JSON or lacks
                a string ``access_token``
        """
        try:
            response_data = response.json()
        except ValueError as e:
            raise MalformedTokenResponseError(
                f"Token response is not valid JSON: {e}", body=response.text
            ) from e

        if not isinstance(response_data, dict) or not isinstance(
            response_data.get("access_token"), str
        ):
            raise MalformedTokenResponseError(
                "access_token not found in token response", body=response.text
            )

        try:
            return TokenData.model_validate(response_data)
        except ValidationError as e:
            raise MalformedTokenResponseError(
                f"Invalid token response format: {e}", body=response.text
            ) from e

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
