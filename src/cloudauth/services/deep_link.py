"""Deep-link handling for the mobile flow.

The OS delivers the provider redirect as a custom-scheme URL. The host's
deep-link handler records it here; the mobile flow later reads the code,
state and error out of it.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from cloudauth.models.flow import CallbackParams
from cloudauth.primitives.request_line import parse_query
from cloudauth.services.verifier_store import SingleSlot

logger = logging.getLogger(__name__)


class DeepLinkInbox(SingleSlot):
    """Remembers the most recent deep-link URL the application received."""

    def record(self, url: str) -> None:
        logger.info(f"Deep link received for scheme {urlsplit(url).scheme!r}")
        self.set(url)

    def last(self) -> str | None:
        return self.peek()


def parse_deep_link(url: str) -> CallbackParams:
    """Extract redirect parameters from a deep-link URL.

    Uses the same query rules as the loopback listener: values are kept
    exactly as received.
    """
    query = urlsplit(url).query
    params = parse_query(query) if query else {}
    return CallbackParams(
        code=params.get("code"),
        state=params.get("state"),
        error=params.get("error"),
        error_description=params.get("error_description"),
    )
