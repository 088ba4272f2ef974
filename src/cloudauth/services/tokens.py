"""OAuth 2.0 token exchange and refresh client.

Implements the RFC 6749 token endpoint interactions used by public clients:
authorization code exchange with a PKCE verifier (RFC 7636) and refresh
token grants. There is no retry at this layer.
"""

from __future__ import annotations

import json
import logging

import httpx
from pydantic import ValidationError

from cloudauth.models.errors import ParseError, ProtocolError, TransportError
from cloudauth.models.tokens import (
    RefreshTokenRequest,
    TokenErrorResponse,
    TokenRequest,
    TokenResponse,
)

logger = logging.getLogger(__name__)


class TokenClient:
    """Performs authorization code and refresh token grants.

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    Both success and error bodies are JSON.
    """

    def __init__(
        self, timeout: float = 30.0, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize the token client.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Optional preconfigured client, used as-is
        """
        self.timeout = timeout
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def exchange_code(
        self,
        endpoint: str,
        client_id: str,
        code: str,
        redirect_uri: str,
        verifier: str,
    ) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Args:
            endpoint: Token endpoint URL
            client_id: Public client identifier
            code: Authorization code from the redirect
            redirect_uri: Redirect URI used in the authorize request
            verifier: PKCE code verifier generated for this attempt

        Returns:
            TokenResponse: Parsed successful response

        Raises:
            TransportError: If the endpoint cannot be reached
            ProtocolError: If the endpoint answers with a non-2xx status
            ParseError: If a 2xx body is not a valid token response
        """
        token_request = TokenRequest(
            token_endpoint=endpoint,
            code=code,
            redirect_uri=redirect_uri,
            client_id=client_id,
            code_verifier=verifier,
        )
        logger.debug(f"Exchanging authorization code at {endpoint}")
        return await self._request_token(
            token_request.token_endpoint, token_request.to_form_data(), "exchange"
        )

    async def refresh(
        self, endpoint: str, client_id: str, refresh_token: str
    ) -> TokenResponse:
        """Refresh an access token using a refresh token.

        Same error contract as ``exchange_code``; no verifier is involved.
        """
        refresh_request = RefreshTokenRequest(
            token_endpoint=endpoint,
            refresh_token=refresh_token,
            client_id=client_id,
        )
        logger.debug(f"Refreshing access token at {endpoint}")
        return await self._request_token(
            refresh_request.token_endpoint, refresh_request.to_form_data(), "refresh"
        )

    async def _request_token(
        self, endpoint: str, form_data: dict[str, str], operation: str
    ) -> TokenResponse:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        logger.debug(
            f"Token {operation} request: grant_type={form_data['grant_type']}, "
            f"client_id={form_data['client_id']}"
        )

        try:
            response = await self._http_client.post(
                endpoint, data=form_data, headers=headers
            )
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error during token {operation}: {e}") from e

        return self._parse_token_response(response, operation)

    def _parse_token_response(
        self, response: httpx.Response, operation: str
    ) -> TokenResponse:
        """Parse a token endpoint response.

        Args:
            response: HTTP response from token endpoint
            operation: "exchange" or "refresh", for messages

        Returns:
            TokenResponse: Parsed successful response

        Raises:
            ParseError: If a 2xx body cannot be parsed
            ProtocolError: For any non-2xx status
        """
        body = response.text

        if response.is_success:
            try:
                payload = json.loads(body)
            except ValueError as e:
                raise ParseError(f"Token response is not valid JSON: {e}") from e
            try:
                token_response = TokenResponse.model_validate(payload)
            except ValidationError as e:
                # The body holds tokens; report field errors only.
                raise ParseError(
                    f"Invalid token response format: {_field_errors(e)}"
                ) from None
            logger.info(f"Token {operation} successful")
            return token_response

        try:
            error = TokenErrorResponse.model_validate(json.loads(body))
        except (ValueError, ValidationError):
            logger.warning(
                f"Token {operation} failed with {response.status_code} "
                "and an unstructured body"
            )
            raise ProtocolError(
                f"unknown: {body}",
                status_code=response.status_code,
                error="unknown",
                error_description=body,
            ) from None

        logger.warning(
            f"Token {operation} failed with {response.status_code}: "
            f"{error.describe()}"
        )
        raise ProtocolError(
            error.describe(),
            status_code=response.status_code,
            error=error.error,
            error_description=error.error_description,
        )

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()


def _field_errors(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc'])}: {detail['msg']}"
        for detail in error.errors()
    )
