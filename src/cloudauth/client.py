"""Host-facing client for cloud-storage authorization.

Wires settings, the verifier store, the deep-link inbox and the token
client into the platform strategy chosen at startup, and exposes the
operations a desktop or mobile UI calls.
"""

from __future__ import annotations

import logging
import sys
from types import TracebackType
from typing import Self

from cloudauth.browser import BrowserLauncher, SystemBrowser
from cloudauth.config import AuthSettings
from cloudauth.models.errors import ConfigurationError
from cloudauth.models.flow import AuthorizationStart
from cloudauth.models.tokens import TokenResponse
from cloudauth.services.deep_link import DeepLinkInbox
from cloudauth.services.flow import (
    AuthorizationFlow,
    DesktopFlow,
    MobileFlow,
    select_flow,
)
from cloudauth.services.tokens import TokenClient
from cloudauth.services.verifier_store import VerifierStore

logger = logging.getLogger(__name__)


class CloudAuthClient:
    """PKCE authorization client for one application process.

    Owns a single verifier store, so only one authorization attempt can be
    pending at a time regardless of which operation started it.
    """

    def __init__(
        self,
        settings: AuthSettings | None = None,
        platform: str | None = None,
        browser: BrowserLauncher | None = None,
        store: VerifierStore | None = None,
        token_client: TokenClient | None = None,
    ):
        """Initialize the client.

        Args:
            settings: Provider and callback settings; read from the
                environment when omitted
            platform: Platform name; defaults to ``sys.platform``
            browser: Launcher used by the desktop flow and ``open_url``
            store: Verifier store shared by every flow of this client
            token_client: Token endpoint client
        """
        self.settings = settings or AuthSettings.from_env()
        self.platform = platform or sys.platform
        self.browser = browser or SystemBrowser()
        self.store = store if store is not None else VerifierStore()
        self.deep_links = DeepLinkInbox()
        self.token_client = token_client or TokenClient(
            timeout=self.settings.http_timeout
        )

        self.flow: AuthorizationFlow = select_flow(
            self.platform,
            self.settings,
            store=self.store,
            token_client=self.token_client,
            browser=self.browser,
        )
        logger.debug(f"Using {self.flow.platform} flow for platform {self.platform}")

    @property
    def is_mobile(self) -> bool:
        return isinstance(self.flow, MobileFlow)

    def start_auth(self, redirect_uri: str | None = None) -> AuthorizationStart:
        """Start a desktop authorization and return its URL and state."""
        return self._desktop_flow().start(redirect_uri=redirect_uri)

    def get_auth_url(self) -> AuthorizationStart:
        """Start a mobile authorization using the deep-link redirect."""
        return self._mobile_flow().start()

    async def exchange_code(
        self, code: str, redirect_uri: str | None = None
    ) -> TokenResponse:
        """Exchange a code obtained through ``start_auth``."""
        return await self._desktop_flow().exchange(code, redirect_uri=redirect_uri)

    async def exchange_code_mobile(self, code: str) -> TokenResponse:
        """Exchange a code obtained through ``get_auth_url``."""
        return await self._mobile_flow().exchange(code)

    async def exchange_deep_link(
        self, expected_state: str, url: str | None = None
    ) -> TokenResponse:
        """Exchange the code from a deep link, by default the last one received."""
        url = url or self.deep_links.last()
        if url is None:
            raise ConfigurationError("No deep link has been received")
        token_response = await self._mobile_flow().exchange_deep_link(
            url, expected_state
        )
        self.deep_links.discard(url)
        return token_response

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        return await self.flow.refresh(refresh_token)

    async def oauth_flow(self) -> TokenResponse:
        """Run the full browser + callback + exchange flow (desktop only)."""
        return await self.flow.run()

    def open_url(self, url: str) -> None:
        self.browser.open(url)

    def record_deep_link(self, url: str) -> None:
        self.deep_links.record(url)

    def last_deep_link(self) -> str | None:
        return self.deep_links.last()

    def clear_deep_link(self) -> None:
        self.deep_links.clear()

    async def close(self) -> None:
        """Close the token client."""
        await self.token_client.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _desktop_flow(self) -> DesktopFlow:
        if isinstance(self.flow, DesktopFlow):
            return self.flow
        return DesktopFlow(
            self.settings,
            store=self.store,
            token_client=self.token_client,
            browser=self.browser,
        )

    def _mobile_flow(self) -> MobileFlow:
        if isinstance(self.flow, MobileFlow):
            return self.flow
        return MobileFlow(self.settings, store=self.store, token_client=self.token_client)
