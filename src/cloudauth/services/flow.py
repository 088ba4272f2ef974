"""Authorization code flow orchestration per platform.

``DesktopFlow`` drives the whole flow itself: it binds the loopback
listener, opens the browser and waits for the redirect. ``MobileFlow`` only
prepares the authorize URL; the redirect comes back later as a deep link and
is exchanged in a separate call.

Both share one verifier store. Starting a new flow replaces the verifier of
any flow still pending, so at most one attempt may be in flight at a time.
The verifier is removed only after a successful exchange; failures and
timeouts leave it in place.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from collections.abc import Callable

from cloudauth.browser import BrowserLauncher, SystemBrowser
from cloudauth.config import AuthSettings, loopback_redirect_uri
from cloudauth.models.errors import (
    CallbackTimeoutError,
    ConfigurationError,
    ProviderError,
    RedirectError,
    StateMismatchError,
    UnsupportedFlowError,
)
from cloudauth.models.flow import AuthorizationRequest, AuthorizationStart
from cloudauth.models.tokens import TokenResponse
from cloudauth.primitives.pkce import generate_pair, generate_state
from cloudauth.services.callback import CallbackListener
from cloudauth.services.deep_link import parse_deep_link
from cloudauth.services.tokens import TokenClient
from cloudauth.services.verifier_store import VerifierStore

logger = logging.getLogger(__name__)

ListenerFactory = Callable[..., CallbackListener]


class AuthorizationFlow(ABC):
    """Shared start / run / exchange interface of the platform strategies."""

    platform: str = ""

    def __init__(
        self,
        settings: AuthSettings,
        store: VerifierStore | None = None,
        token_client: TokenClient | None = None,
    ):
        self.settings = settings
        self.store = store if store is not None else VerifierStore()
        self.token_client = token_client or TokenClient(timeout=settings.http_timeout)

    @property
    @abstractmethod
    def redirect_uri(self) -> str:
        """Redirect URI registered for this platform."""

    @abstractmethod
    async def run(self, client_id: str | None = None) -> TokenResponse:
        """Run the complete flow and return tokens."""

    def start(
        self, client_id: str | None = None, redirect_uri: str | None = None
    ) -> AuthorizationStart:
        """Begin an authorization attempt.

        Generates a PKCE pair and state, stores the verifier (replacing any
        pending one) and builds the authorize URL.

        Args:
            client_id: Public client identifier; defaults to the settings
            redirect_uri: Overrides the platform redirect URI

        Returns:
            AuthorizationStart: URL for the user to visit and its state
        """
        return self._begin(
            self._resolve_client_id(client_id),
            redirect_uri or self.redirect_uri,
            generate_state(),
        )

    def _begin(
        self, client_id: str, redirect_uri: str, state: str
    ) -> AuthorizationStart:
        pair = generate_pair()
        self.store.set(pair.verifier)

        auth_request = AuthorizationRequest(
            authorization_endpoint=self.settings.authorize_endpoint,
            client_id=client_id,
            redirect_uri=redirect_uri,
            code_challenge=pair.challenge,
            code_challenge_method=pair.method,
            state=state,
        )

        logger.info(f"Started {self.platform} authorization for client {client_id}")
        return AuthorizationStart(
            url=auth_request.build_authorization_url(),
            state=state,
            redirect_uri=redirect_uri,
        )

    async def exchange(
        self,
        code: str,
        client_id: str | None = None,
        redirect_uri: str | None = None,
    ) -> TokenResponse:
        """Exchange an authorization code using the stored verifier.

        Raises:
            ConfigurationError: If no flow was started, so there is no verifier
            TransportError, ProtocolError, ParseError: From the token endpoint
        """
        client_id = self._resolve_client_id(client_id)
        redirect_uri = redirect_uri or self.redirect_uri

        verifier = self.store.peek()
        if verifier is None:
            raise ConfigurationError("No code verifier found - start auth first")

        logger.info(f"Exchanging code for tokens ({self.platform} flow)")
        token_response = await self.token_client.exchange_code(
            self.settings.token_endpoint,
            client_id,
            code,
            redirect_uri,
            verifier,
        )

        self.store.discard(verifier)
        return token_response

    async def refresh(
        self, refresh_token: str, client_id: str | None = None
    ) -> TokenResponse:
        client_id = self._resolve_client_id(client_id)
        return await self.token_client.refresh(
            self.settings.token_endpoint, client_id, refresh_token
        )

    async def close(self) -> None:
        await self.token_client.close()

    def _resolve_client_id(self, client_id: str | None) -> str:
        resolved = client_id or self.settings.client_id
        if not resolved:
            raise ConfigurationError("client_id is required")
        return resolved


class DesktopFlow(AuthorizationFlow):
    """Loopback-redirect flow for desktop hosts."""

    platform = "desktop"

    def __init__(
        self,
        settings: AuthSettings,
        store: VerifierStore | None = None,
        token_client: TokenClient | None = None,
        browser: BrowserLauncher | None = None,
        listener_factory: ListenerFactory = CallbackListener,
    ):
        super().__init__(settings, store, token_client)
        self.browser = browser or SystemBrowser()
        self._listener_factory = listener_factory

    @property
    def redirect_uri(self) -> str:
        return self.settings.desktop_redirect_uri

    async def run(self, client_id: str | None = None) -> TokenResponse:
        """Complete the flow: browser, loopback callback, code exchange.

        Raises:
            PortUnavailableError: If the callback port is taken
            ProviderError: If the provider redirected back with an error
            CallbackTimeoutError: If no valid callback arrived in time
            TransportError, ProtocolError, ParseError: From the exchange
        """
        client_id = self._resolve_client_id(client_id)
        state = generate_state()

        listener = self._listener_factory(
            state,
            host=self.settings.callback_host,
            port=self.settings.callback_port,
        )
        await listener.start()

        try:
            # The redirect names the bound port, which differs from the
            # configured one when that is 0.
            pending = self._begin(
                client_id, loopback_redirect_uri(listener.port), state
            )
            self.browser.open(pending.url)
            code = await self._wait_for_code(listener)
        finally:
            await listener.close()

        logger.info("Received OAuth code, exchanging for tokens")
        return await self.exchange(code, client_id, pending.redirect_uri)

    async def _wait_for_code(self, listener: CallbackListener) -> str:
        timeout = self.settings.callback_timeout
        try:
            return await asyncio.wait_for(listener.wait_for_code(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"No OAuth callback received within {timeout:g} seconds")
            raise CallbackTimeoutError(
                f"OAuth timeout - no response received within {timeout:g} seconds"
            ) from None


class MobileFlow(AuthorizationFlow):
    """Deep-link redirect flow for mobile hosts."""

    platform = "mobile"

    @property
    def redirect_uri(self) -> str:
        return self.settings.mobile_redirect_uri

    async def run(self, client_id: str | None = None) -> TokenResponse:
        raise UnsupportedFlowError(
            "The combined flow is desktop only; on mobile call start(), open "
            "the URL, then exchange the code from the deep link"
        )

    async def exchange_deep_link(
        self,
        url: str,
        expected_state: str,
        client_id: str | None = None,
    ) -> TokenResponse:
        """Exchange the code carried by a deep-link redirect.

        Args:
            url: Deep-link URL delivered by the OS
            expected_state: State returned by ``start`` for this attempt

        Raises:
            ProviderError: If the redirect carries an error
            StateMismatchError: If the state is missing or differs
            RedirectError: If the redirect carries no code
        """
        params = parse_deep_link(url)

        if params.is_error():
            raise ProviderError(params.error)
        if params.state is None or not secrets.compare_digest(
            params.state.encode("utf-8"), expected_state.encode("utf-8")
        ):
            logger.warning("Deep link state does not match the pending authorization")
            raise StateMismatchError("Deep link state does not match this attempt")
        if params.code is None:
            raise RedirectError("Deep link is missing the authorization code")

        return await self.exchange(params.code, client_id)


def select_flow(
    platform: str,
    settings: AuthSettings,
    store: VerifierStore | None = None,
    token_client: TokenClient | None = None,
    browser: BrowserLauncher | None = None,
) -> AuthorizationFlow:
    """Pick the strategy for a platform name such as ``sys.platform``.

    ``android`` and ``ios`` get the deep-link flow, everything else the
    loopback flow.
    """
    if platform.lower() in ("android", "ios"):
        return MobileFlow(settings, store, token_client)
    return DesktopFlow(settings, store, token_client, browser)
