"""Authorization flow models.

Contains models for authorize-URL building and callback handling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlencode


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the provider's authorize endpoint."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    code_challenge: str
    state: str
    code_challenge_method: str = "S256"
    token_access_type: str = "offline"

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "response_type": "code",
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
            "token_access_type": self.token_access_type,
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "state": self.state,
        }

        return f"{self.authorization_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class AuthorizationStart:
    """What the host needs to send the user to the provider.

    The state must be kept by the caller when it validates the redirect
    itself (mobile deep links).
    """

    url: str
    state: str
    redirect_uri: str = field(default="")


@dataclass(frozen=True)
class CallbackParams:
    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None

    def is_success(self) -> bool:
        return self.error is None and self.code is not None

    def is_error(self) -> bool:
        return self.error is not None
