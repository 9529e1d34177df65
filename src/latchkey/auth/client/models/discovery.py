"""Discovery-related models for OAuth 2.1 server metadata.

Contains the subset of Authorization Server Metadata (RFC 8414) and
OpenID Connect discovery documents that the authorization code flow needs.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class AuthorizationServerMetadata(BaseModel):
    """OAuth 2.0 Authorization Server Metadata (RFC 8414).

    Only the two endpoints used by the authorization code flow are required.
    Every other field of a full OAuth or OIDC document is ignored, whatever
    its shape.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    # Required for authorization code flow (our use case)
    authorization_endpoint: str
    token_endpoint: str

    # Dynamic registration (RFC 7591)
    registration_endpoint: str | None = None

    @field_validator("registration_endpoint", mode="before")
    @classmethod
    def non_string_as_absent(cls, v: Any) -> str | None:
        return v if isinstance(v, str) else None
