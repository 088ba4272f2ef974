"""Opening the authorization URL in the user's browser."""

from __future__ import annotations

import logging
import webbrowser
from typing import Protocol

from cloudauth.models.errors import BrowserLaunchError

logger = logging.getLogger(__name__)


class BrowserLauncher(Protocol):
    """Hands a URL to whatever shows it to the user.

    Desktop hosts use the system browser; mobile hosts pass the URL to an
    OS intent instead.
    """

    def open(self, url: str) -> None: ...


class SystemBrowser:
    """Launches the platform's default browser via :mod:`webbrowser`."""

    def open(self, url: str) -> None:
        # Query string carries the challenge and state only.
        logger.info("Opening authorization URL in the system browser")
        if not webbrowser.open(url):
            raise BrowserLaunchError("Failed to open browser")
