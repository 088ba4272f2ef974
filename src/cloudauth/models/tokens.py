"""Token request and response models.

Requests are immutable dataclasses rendered as form data; responses are
pydantic models parsed from the token endpoint's JSON body.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange parameters (RFC 6749 Section 4.1.3).

    Carries the PKCE code_verifier (RFC 7636) that proves this client
    started the flow.
    """

    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    code_verifier: str

    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Returns:
            Dictionary suitable for httpx data parameter
        """
        return {
            "code": self.code,
            "grant_type": self.grant_type,
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "code_verifier": self.code_verifier,
        }


@dataclass(frozen=True)
class RefreshTokenRequest:
    """Refresh token request parameters (RFC 6749 Section 6)."""

    token_endpoint: str
    refresh_token: str
    client_id: str

    grant_type: str = "refresh_token"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request."""
        return {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
        }


class TokenResponse(BaseModel):
    """Successful token endpoint response (RFC 6749 Section 5.1).

    ``uid`` and ``account_id`` are provider account identifiers some
    cloud-storage providers add to the standard fields.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str
    expires_in: int | None = None  # Seconds until expiry
    refresh_token: str | None = None
    scope: str | None = None
    uid: str | None = None
    account_id: str | None = None

    def calculate_expires_at(self) -> float | None:
        """Calculate absolute expiry timestamp from expires_in.

        Returns:
            Unix timestamp when token expires, or None if no expiry
        """
        if self.expires_in is None:
            return None
        return time.time() + self.expires_in


class TokenErrorResponse(BaseModel):
    """Token endpoint error body (RFC 6749 Section 5.2)."""

    model_config = ConfigDict(extra="ignore")

    error: str
    error_description: str | None = None

    def describe(self) -> str:
        return f"{self.error}: {self.error_description or 'no description'}"
