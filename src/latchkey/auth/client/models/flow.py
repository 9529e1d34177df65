"""Authorization flow models for OAuth 2.1.

Contains the per-attempt flow state, its lifecycle phases, the
authorization request and the outcomes of callback handling.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode

from latchkey.auth.client.models.discovery import AuthorizationServerMetadata
from latchkey.auth.client.primitives.pkce import (
    generate_code_verifier,
    generate_state,
)


class FlowPhase(str, Enum):
    """Lifecycle of one authorization attempt."""

    CREATED = "created"
    LISTENING = "listening"
    CODE_RECEIVED = "code_received"
    TIMED_OUT = "timed_out"
    EXCHANGED = "exchanged"
    FAILED = "failed"


class CallbackOutcome(str, Enum):
    """Result of handling one request on the callback listener."""

    SUCCESS = "success"
    MISSING_PARAMETERS = "missing_parameters"
    STATE_MISMATCH = "state_mismatch"
    ALREADY_COMPLETED = "already_completed"


@dataclass(frozen=True)
class FlowState:
    """Security material and endpoints owned by one authorization attempt.

    ``state`` is the CSRF nonce and ``verifier`` the PKCE secret; both are
    generated fresh by :meth:`create` and never reused.
    """

    endpoints: AuthorizationServerMetadata
    client_id: str
    redirect_url: str
    state: str
    verifier: str

    @classmethod
    def create(
        cls,
        endpoints: AuthorizationServerMetadata,
        client_id: str,
        redirect_url: str,
    ) -> FlowState:
        return cls(
            endpoints=endpoints,
            client_id=client_id,
            redirect_url=redirect_url,
            state=generate_state(),
            verifier=generate_code_verifier(),
        )


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for OAuth 2.1 flow."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    state: str
    code_challenge: str
    resource: str  # RFC 8707
    code_challenge_method: str = "S256"

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "state": self.state,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
            "resource": self.resource,
        }

        return f"{self.authorization_endpoint}?{urlencode(params)}"
