"""Token exchange models for OAuth 2.1."""

from __future__ import annotations

from dataclasses import dataclass

from typing import Any

from pydantic import BaseModel, field_validator


@dataclass(frozen=True)
class TokenRequest:
    """OAuth 2.1 token exchange request parameters (RFC 6749 Section 4.1.3).

    Includes the PKCE code_verifier (RFC 7636) and the resource
    parameter (RFC 8707), which must match the authorization request.
    """

    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    code_verifier: str
    resource: str
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Token requests must use form encoding, not JSON (RFC 6749 Section 4.1.3).
        """
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "code_verifier": self.code_verifier,
            "client_id": self.client_id,
            "resource": self.resource,
        }


class TokenData(BaseModel):
    """Successful token response (RFC 6749 Section 5.1).

    Returned to the caller and not retained. The refresh token is captured
    but never used by this package.
    """

    access_token: str
    refresh_token: str | None = None

    @field_validator("refresh_token", mode="before")
    @classmethod
    def non_string_as_absent(cls, v: Any) -> str | None:
        return v if isinstance(v, str) else None
