"""PKCE (Proof Key for Code Exchange) primitives for OAuth 2.1 security.

Implements RFC 7636 S256 challenge derivation plus generation of the
per-attempt random values: the PKCE verifier and the CSRF ``state`` nonce.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import string

from latchkey.auth.client.models.security import PKCEParameters

# URL-safe, also a subset of the RFC 7636 unreserved characters
TOKEN_ALPHABET = string.ascii_letters + string.digits + "_-"

STATE_LENGTH = 16
VERIFIER_LENGTH = 64


def generate_token(length: int) -> str:
    """Generate a cryptographically secure random token of ``length`` characters."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def generate_state() -> str:
    """Generate a fresh state parameter for CSRF protection."""
    return generate_token(STATE_LENGTH)


def generate_code_verifier() -> str:
    """Generate a fresh PKCE code verifier.

    RFC 7636 Section 4.1 requires 43-128 unreserved characters.
    """
    return generate_token(VERIFIER_LENGTH)


def compute_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge for a verifier.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier))),
    without padding.
    """
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class PKCEManager:
    """Creates PKCE parameters for authorization code flows."""

    def generate_parameters(self, code_verifier: str | None = None) -> PKCEParameters:
        """Generate PKCE parameters, optionally for an existing verifier.

        Returns:
            PKCEParameters: Verifier, derived challenge and ``S256`` method
        """
        if code_verifier is None:
            code_verifier = generate_code_verifier()

        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=compute_code_challenge(code_verifier),
            code_challenge_method="S256",
        )
