"""Exception hierarchy for PKCE authorization errors.

Every terminal failure of a flow maps to one of these types so the host UI
can tell them apart without parsing messages.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all authorization related errors."""

    pass


class ConfigurationError(OAuth2Error):
    """Raised when a flow is used before it is set up.

    Typically an exchange attempted with no stored code verifier, or invalid
    settings.
    """

    pass


class LockError(OAuth2Error):
    """Raised when a single-slot store was left poisoned by an aborted update."""

    pass


class TransportError(OAuth2Error):
    """Raised when the provider cannot be reached (refused, timeout, DNS)."""

    pass


class ProtocolError(OAuth2Error):
    """Raised when the token endpoint answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error: str | None = None,
        error_description: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.error_description = error_description


class ParseError(OAuth2Error):
    """Raised when a successful token response body is not valid JSON."""

    pass


class PortUnavailableError(OAuth2Error):
    """Raised when the loopback callback listener cannot bind its port."""

    def __init__(self, message: str, port: int):
        super().__init__(message)
        self.port = port


class CallbackTimeoutError(OAuth2Error):
    """Raised when no valid callback arrives within the flow timeout."""

    pass


class ProviderError(OAuth2Error):
    """Raised when the authorize step redirects back with an ``error``."""

    def __init__(self, error: str):
        super().__init__(f"Authorization failed: {error}")
        self.error = error


class StateMismatchError(OAuth2Error):
    """Raised when a callback carries a state other than the expected one.

    The loopback listener absorbs this and keeps waiting; it only reaches
    callers through explicit deep-link handling.
    """

    pass


class UnsupportedFlowError(OAuth2Error):
    """Raised when an operation is not available on the selected platform."""

    pass


class BrowserLaunchError(OAuth2Error):
    """Raised when the authorization URL cannot be opened."""

    pass


class RedirectError(OAuth2Error):
    """Raised when a redirect carries neither an authorization code nor an error."""

    pass
