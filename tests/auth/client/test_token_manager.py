"""Tests for the authorization code to token exchange."""

from unittest.mock import AsyncMock

import httpx
import pytest

from latchkey.auth.client.models.errors import (
    MalformedTokenResponseError,
    TokenExchangeFailedError,
)
from latchkey.auth.client.models.tokens import TokenRequest
from latchkey.auth.client.services.tokens import OAuth2TokenManager


class TestTokenExchange:
    def setup_method(self):
        # Arrange
        self.token_manager = OAuth2TokenManager()
        self.token_manager._http_client = AsyncMock()
        self.token_request = TokenRequest(
            token_endpoint="https://auth.example.com/token",
            code="auth-code-123",
            redirect_uri="http://127.0.0.1:8020/",
            client_id="client-456",
            code_verifier="dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk",
            resource="https://mcp.example.com/api",
        )

    async def test_successful_exchange(self):
        # Arrange
        self.token_manager._http_client.post.return_value = httpx.Response(
            200,
            json={
                "access_token": "tok_1",
                "refresh_token": "r1",
                "token_type": "Bearer",
                "expires_in": 3600,
            },
        )

        # Act
        token_data = await self.token_manager.exchange_code_for_token(
            self.token_request
        )

        # Assert
        assert token_data.access_token == "tok_1"
        assert token_data.refresh_token == "r1"

        call_args = self.token_manager._http_client.post.call_args
        assert call_args.args[0] == "https://auth.example.com/token"
        assert call_args.kwargs["data"] == {
            "grant_type": "authorization_code",
            "code": "auth-code-123",
            "redirect_uri": "http://127.0.0.1:8020/",
            "code_verifier": "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk",
            "client_id": "client-456",
            "resource": "https://mcp.example.com/api",
        }
        headers = call_args.kwargs["headers"]
        assert headers["Content-Type"] == "application/x-www-form-urlencoded"

    async def test_refresh_token_is_optional(self):
        # Arrange
        self.token_manager._http_client.post.return_value = httpx.Response(
            200, json={"access_token": "tok_1"}
        )

        # Act
        token_data = await self.token_manager.exchange_code_for_token(
            self.token_request
        )

        # Assert
        assert token_data.access_token == "tok_1"
        assert token_data.refresh_token is None


    async def test_loose_optional_fields_are_tolerated(self):
        # Arrange
        self.token_manager._http_client.post.return_value = httpx.Response(
            200,
            json={
                "access_token": "tok_1",
                "refresh_token": 12345,
                "scope": ["read", "write"],
                "expires_in": "3600",
                "token_type": None,
            },
        )

        # Act
        token_data = await self.token_manager.exchange_code_for_token(
            self.token_request
        )

        # Assert
        assert token_data.access_token == "tok_1"
        assert token_data.refresh_token is None

class TestTokenExchangeErrors:
    def setup_method(self):
        self.token_manager = OAuth2TokenManager()
        self.token_manager._http_client = AsyncMock()
        self.token_request = TokenRequest(
            token_endpoint="https://auth.example.com/token",
            code="auth-code-123",
            redirect_uri="http://127.0.0.1:8020/",
            client_id="client-456",
            code_verifier="v" * 64,
            resource="https://mcp.example.com",
        )

    async def test_non_2xx_response(self):
        # Arrange
        self.token_manager._http_client.post.return_value = httpx.Response(
            400, json={"error": "invalid_grant"}
        )

        # Act
        with pytest.raises(TokenExchangeFailedError) as exc_info:
            await self.token_manager.exchange_code_for_token(self.token_request)

        # Assert
        assert exc_info.value.status_code == 400
        assert "invalid_grant" in exc_info.value.body
        assert self.token_manager._http_client.post.await_count == 1

    @pytest.mark.parametrize(
        "body",
        [
            {"refresh_token": "r1"},
            {"access_token": None},
            {"access_token": 42},
            ["tok_1"],
        ],
    )
    async def test_missing_access_token(self, body):
        # Arrange
        self.token_manager._http_client.post.return_value = httpx.Response(
            200, json=body
        )

        # Act & Assert
        with pytest.raises(MalformedTokenResponseError):
            await self.token_manager.exchange_code_for_token(self.token_request)

    async def test_non_json_success_body(self):
        # Arrange
        self.token_manager._http_client.post.return_value = httpx.Response(
            200, text="access_token=tok_1"
        )

        # Act & Assert
        with pytest.raises(MalformedTokenResponseError) as exc_info:
            await self.token_manager.exchange_code_for_token(self.token_request)
        assert exc_info.value.body == "access_token=tok_1"

    async def test_transport_error(self):
        # Arrange
        self.token_manager._http_client.post.side_effect = httpx.ReadTimeout(
            "timed out"
        )

        # Act & Assert
        with pytest.raises(TokenExchangeFailedError) as exc_info:
            await self.token_manager.exchange_code_for_token(self.token_request)
        assert exc_info.value.status_code is None
