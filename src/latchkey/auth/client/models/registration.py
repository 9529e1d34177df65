"""Client registration models for OAuth 2.0 Dynamic Client Registration.

Contains the request (RFC 7591 client metadata) and response shapes
exchanged once with the registration endpoint.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class ClientMetadata(BaseModel):
    """OAuth 2.0 Client Metadata for dynamic registration (RFC 7591).

    Always describes a public client: no secret is requested and the
    token endpoint is called without client authentication. Which redirect
    URIs are acceptable is left to the registration endpoint.
    """

    redirect_uris: list[str] = Field(min_length=1)
    token_endpoint_auth_method: str = "none"
    grant_types: list[str] = Field(
        default_factory=lambda: ["authorization_code", "refresh_token"]
    )
    response_types: list[str] = Field(default_factory=lambda: ["code"])
    client_name: str
    client_uri: str


class ClientCredentials(BaseModel):
    """OAuth 2.0 Client Credentials from registration response.

    Only ``client_id`` is required. ``client_secret`` is parsed when an
    issuer returns one but nothing downstream reads it.
    """

    client_id: str
    client_id_issued_at: float | None = None
    client_secret: str | None = None

    @field_validator("client_id_issued_at", mode="before")
    @classmethod
    def non_numeric_as_absent(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return v

    @field_validator("client_secret", mode="before")
    @classmethod
    def non_string_as_absent(cls, v: Any) -> str | None:
        return v if isinstance(v, str) else None
