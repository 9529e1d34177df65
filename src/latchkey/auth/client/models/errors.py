"""Exception hierarchy for OAuth 2.1 authentication errors.

Each failure mode of an authentication attempt has its own exception type,
carrying enough context (attempted paths, HTTP status, response body) to
diagnose the failure without retrying.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.1 related errors."""

    pass


class InvalidTargetError(OAuth2Error):
    """Raised when a target URL cannot be parsed or has no host."""

    def __init__(self, url: str, reason: str = "no host found"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid target URL {url!r}: {reason}")


class DiscoveryError(OAuth2Error):
    """Raised when OAuth server discovery fails."""

    pass


class DiscoveryExhaustedError(DiscoveryError):
    """Raised when every discovery candidate path failed.

    Attributes:
        host: Issuer origin that was queried
        attempted_paths: Paths tried, in the order they were tried
        last_error: Last underlying failure, if any was recorded
    """

    def __init__(
        self,
        host: str,
        attempted_paths: list[str],
        last_error: Exception | None = None,
    ):
        self.host = host
        self.attempted_paths = list(attempted_paths)
        self.last_error = last_error
        message = (
            f"No OAuth discovery endpoint found at {host}. "
            f"Tried paths: {self.attempted_paths}"
        )
        if last_error is not None:
            message += f". Last error: {last_error}"
        super().__init__(message)


class RegistrationError(OAuth2Error):
    """Raised when dynamic client registration fails."""

    pass


class NoRegistrationEndpointError(RegistrationError):
    """Raised when discovered metadata advertises no registration endpoint."""

    def __init__(self, host: str | None = None):
        self.host = host
        where = f" at {host}" if host else ""
        super().__init__(f"No registration endpoint available{where}")


class RegistrationFailedError(RegistrationError):
    """Raised when the registration endpoint rejects or garbles a request."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class AuthorizationError(OAuth2Error):
    """Raised when user authorization fails."""

    pass


class CallbackListenerError(AuthorizationError):
    """Raised when the loopback callback listener cannot be started."""

    def __init__(self, port: int, reason: str):
        self.port = port
        self.reason = reason
        super().__init__(f"Callback listener could not bind port {port}: {reason}")


class AuthorizationTimeoutError(AuthorizationError):
    """Raised when no valid callback arrives within the wait bound."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Authentication timed out after {timeout:g} seconds")


class TokenError(OAuth2Error):
    """Raised when token operations fail."""

    pass


class TokenExchangeFailedError(TokenError):
    """Raised when the token endpoint refuses the authorization code."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class MalformedTokenResponseError(TokenError):
    """Raised when a successful token response carries no usable access token."""

    def __init__(self, message: str, body: str = ""):
        self.body = body
        super().__init__(message)
