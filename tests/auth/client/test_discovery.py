"""Tests for OAuth discovery path ordering and fallback.

- Candidate ordering, with and without a custom path
- Short-circuit on the first valid document
- Fallback on HTTP errors, network errors and invalid metadata
- Exhaustion diagnostics
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from latchkey.auth.client.models.errors import DiscoveryExhaustedError
from latchkey.auth.client.primitives.discovery import (
    WELL_KNOWN_PATHS,
    OAuth2Discovery,
)

HOST = "https://mcp.example.com"


def requested_urls(mock_get: AsyncMock) -> list[str]:
    return [call.args[0] for call in mock_get.call_args_list]


class TestDiscoveryPaths:
    def setup_method(self):
        self.discovery = OAuth2Discovery()

    def test_default_order(self):
        assert self.discovery.build_discovery_paths() == [
            "/.well-known/oauth-authorization-server",
            "/.well-known/openid_configuration",
            "/oauth/.well-known/oauth-authorization-server",
            "/.well-known/oauth_authorization_server",
        ]

    def test_custom_path_tried_first(self):
        paths = self.discovery.build_discovery_paths("/custom/meta")

        assert paths[0] == "/custom/meta"
        assert paths[1:] == list(WELL_KNOWN_PATHS)


class TestDiscover:
    def setup_method(self):
        self.discovery = OAuth2Discovery()
        self.discovery._http_client = AsyncMock()

    async def test_stops_at_first_valid_candidate(self, metadata_document):
        """Fails on paths 1 and 2, succeeds on 3, never touches 4."""
        # Arrange
        self.discovery._http_client.get.side_effect = [
            httpx.Response(404),
            httpx.Response(500, text="boom"),
            httpx.Response(200, json=metadata_document),
            httpx.Response(200, json=metadata_document),
        ]

        # Act
        metadata = await self.discovery.discover(HOST)

        # Assert
        assert metadata.token_endpoint == "https://mcp.example.com/token"
        assert requested_urls(self.discovery._http_client.get) == [
            "https://mcp.example.com/.well-known/oauth-authorization-server",
            "https://mcp.example.com/.well-known/openid_configuration",
            "https://mcp.example.com/oauth/.well-known/oauth-authorization-server",
        ]

    async def test_custom_path_success_short_circuits(self, metadata_document):
        # Arrange
        self.discovery._http_client.get.return_value = httpx.Response(
            200, json=metadata_document
        )

        # Act
        await self.discovery.discover(HOST, "/custom/meta")

        # Assert
        assert requested_urls(self.discovery._http_client.get) == [
            "https://mcp.example.com/custom/meta"
        ]

    async def test_network_error_moves_to_next_candidate(self, metadata_document):
        # Arrange
        self.discovery._http_client.get.side_effect = [
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json=metadata_document),
        ]

        # Act
        metadata = await self.discovery.discover(HOST)

        # Assert
        assert metadata.authorization_endpoint == "https://mcp.example.com/authorize"
        assert self.discovery._http_client.get.await_count == 2

    async def test_invalid_metadata_moves_to_next_candidate(self, metadata_document):
        # Arrange
        self.discovery._http_client.get.side_effect = [
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json={"authorization_endpoint": "https://a/auth"}),
            httpx.Response(
                200, json={"authorization_endpoint": 1, "token_endpoint": "https://t"}
            ),
            httpx.Response(200, json=metadata_document),
        ]

        # Act
        metadata = await self.discovery.discover(HOST)

        # Assert
        assert metadata.registration_endpoint == "https://mcp.example.com/register"
        assert self.discovery._http_client.get.await_count == 4

    async def test_registration_endpoint_is_optional(self):
        # Arrange
        self.discovery._http_client.get.return_value = httpx.Response(
            200,
            json={
                "authorization_endpoint": "https://auth.example.com/authorize",
                "token_endpoint": "https://auth.example.com/token",
                "response_types_supported": ["code"],
            },
        )

        # Act
        metadata = await self.discovery.discover(HOST)

        # Assert
        assert metadata.registration_endpoint is None

    async def test_malformed_informational_fields_are_ignored(self, metadata_document):
        # Arrange
        document = {
            **metadata_document,
            "scopes_supported": "openid profile",
            "code_challenge_methods_supported": "S256",
            "issuer": 42,
        }
        self.discovery._http_client.get.return_value = httpx.Response(
            200, json=document
        )

        # Act
        metadata = await self.discovery.discover(HOST)

        # Assert
        assert metadata.authorization_endpoint == "https://mcp.example.com/authorize"
        assert self.discovery._http_client.get.await_count == 1

    async def test_non_string_registration_endpoint_is_absent(self, metadata_document):
        # Arrange
        self.discovery._http_client.get.return_value = httpx.Response(
            200, json={**metadata_document, "registration_endpoint": {"url": "x"}}
        )

        # Act
        metadata = await self.discovery.discover(HOST)

        # Assert
        assert metadata.registration_endpoint is None
        assert self.discovery._http_client.get.await_count == 1

    async def test_exhaustion_reports_paths_and_last_error(self):
        # Arrange
        last = httpx.ConnectError("connection refused")
        self.discovery._http_client.get.side_effect = [
            httpx.Response(404),
            httpx.Response(404),
            httpx.Response(200, json={}),
            httpx.Response(404),
            last,
        ]

        # Act
        with pytest.raises(DiscoveryExhaustedError) as exc_info:
            await self.discovery.discover(HOST, "/custom")

        # Assert
        error = exc_info.value
        assert error.host == HOST
        assert error.attempted_paths == ["/custom", *WELL_KNOWN_PATHS]
        assert error.last_error is last
        assert "/custom" in str(error)
