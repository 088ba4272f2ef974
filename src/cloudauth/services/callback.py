"""Loopback listener that captures the provider redirect on desktop.

The browser is sent to ``http://localhost:<port>/callback``. This module
binds that port before the browser opens, then handles one connection at a
time until a request carries either an authorization code or an error:

- path other than ``/callback``: answer 404 and keep waiting
- ``error`` in the query: show an error page and fail with ProviderError
- ``state`` that does not match: drop the connection and keep waiting
- ``code`` with a matching (or absent) state: show a success page and
  return the code

The listener has no timeout of its own; callers bound the wait. Because
connections are served one at a time and each is read before the next is
accepted, a client that connects and sends nothing (such as a browser
preconnect) holds up every later connection until it closes or the caller's
wait expires.

Each connection gets a single read of at most ``READ_BUFFER_SIZE`` bytes.
Anything past that, including query parameters, is never seen.
"""

from __future__ import annotations

import asyncio
import html
import logging
import secrets
from dataclasses import dataclass
from string import Template
from types import TracebackType
from typing import Self

from cloudauth.models.errors import (
    PortUnavailableError,
    ProviderError,
    StateMismatchError,
)
from cloudauth.primitives.request_line import parse_request_line

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"
DEFAULT_CALLBACK_PORT = 8742
READ_BUFFER_SIZE = 4096

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html><head><title>$title</title><style>
body { font-family: -apple-system, BlinkMacSystemFont, sans-serif;
display: flex; justify-content: center; align-items: center; height: 100vh;
margin: 0; background: #1a1a2e; color: white; }
.container { text-align: center; padding: 2rem; }
h1 { color: $color; }
</style></head><body>
<div class="container">
<h1>$title</h1>
$body
</div></body></html>"""


def success_page() -> str:
    return Template(_PAGE_TEMPLATE).substitute(
        title="Connected!",
        color="#4ade80",
        body="<p>You can close this window and return to the application.</p>",
    )


def error_page(error: str) -> str:
    return Template(_PAGE_TEMPLATE).substitute(
        title="Authorization error",
        color="#ff6b6b",
        body=f"<p>{html.escape(error)}</p>\n<p>You can close this window.</p>",
    )


NOT_FOUND_RESPONSE = (
    b"HTTP/1.1 404 Not Found\r\nContent-Length: 0\r\nConnection: close\r\n\r\n"
)


def html_response(body: str) -> bytes:
    payload = body.encode("utf-8")
    head = (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: text/html; charset=utf-8\r\n"
        f"Content-Length: {len(payload)}\r\n"
        "Connection: close\r\n\r\n"
    )
    return head.encode("ascii") + payload


@dataclass(frozen=True)
class CallbackDecision:
    """What to do with one accepted connection."""

    response: bytes
    code: str | None = None
    error: str | None = None

    @property
    def terminal(self) -> bool:
        return self.code is not None or self.error is not None


def evaluate_request(data: bytes, expected_state: str) -> CallbackDecision:
    """Decide how to answer one raw request against the expected state.

    Args:
        data: Bytes from the connection's single read
        expected_state: State generated for the current attempt

    Returns:
        The response to send and, when terminal, the code or error

    Raises:
        StateMismatchError: If the callback carries a different state
    """
    request = parse_request_line(data)
    if request is None or request.method != "GET" or request.path != CALLBACK_PATH:
        return CallbackDecision(response=NOT_FOUND_RESPONSE)

    params = request.to_callback_params()

    if params.error is not None:
        return CallbackDecision(
            response=html_response(error_page(params.error)), error=params.error
        )

    if params.state is not None and not secrets.compare_digest(
        params.state.encode("utf-8"), expected_state.encode("utf-8")
    ):
        raise StateMismatchError("Callback state does not match this attempt")

    if params.code is not None:
        return CallbackDecision(
            response=html_response(success_page()), code=params.code
        )

    return CallbackDecision(response=NOT_FOUND_RESPONSE)


class CallbackListener:
    """Single-use loopback HTTP acceptor for one authorization attempt.

    Connections are served strictly one after another, so at most one code
    is ever extracted. Once a terminal request has been seen, later
    connections are closed unanswered.
    """

    def __init__(
        self,
        expected_state: str,
        host: str = "127.0.0.1",
        port: int = DEFAULT_CALLBACK_PORT,
        read_size: int = READ_BUFFER_SIZE,
    ):
        self.expected_state = expected_state
        self.host = host
        self.read_size = read_size
        self._requested_port = port
        self._bound_port: int | None = None
        self._server: asyncio.Server | None = None
        self._result: asyncio.Future[str] | None = None
        self._lock = asyncio.Lock()
        self._writers: set[asyncio.StreamWriter] = set()

    @property
    def port(self) -> int:
        """Port actually bound, which differs from the requested one for 0.

        Kept after ``close`` so callers can still report it.
        """
        if self._bound_port is None:
            return self._requested_port
        return self._bound_port

    @property
    def listening(self) -> bool:
        return self._server is not None and self._server.is_serving()

    async def start(self) -> None:
        """Bind the loopback port.

        Raises:
            PortUnavailableError: If the port cannot be bound
        """
        if self._server is not None:
            return

        self._result = asyncio.get_running_loop().create_future()
        try:
            self._server = await asyncio.start_server(
                self._handle_connection, self.host, self._requested_port
            )
        except OSError as e:
            raise PortUnavailableError(
                f"Failed to start callback server on {self.host}:"
                f"{self._requested_port}: {e}",
                port=self._requested_port,
            ) from e

        self._bound_port = self._server.sockets[0].getsockname()[1]

        logger.info(f"OAuth callback server listening on port {self.port}")

    async def wait_for_code(self) -> str:
        """Wait until a valid callback arrives.

        Returns:
            The authorization code from the redirect

        Raises:
            ProviderError: If the redirect reported an authorization error
            RuntimeError: If the listener was never started
        """
        if self._result is None:
            raise RuntimeError("Callback listener is not started")
        return await self._result

    async def close(self) -> None:
        """Stop accepting and drop any connection still being served."""
        if self._server is None:
            return

        self._server.close()
        for writer in list(self._writers):
            writer.close()
        await self._server.wait_closed()
        self._server = None

        if self._result is not None and not self._result.done():
            self._result.cancel()

        logger.debug("OAuth callback server closed")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._writers.add(writer)
        try:
            async with self._lock:
                await self._serve(reader, writer)
        finally:
            self._writers.discard(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def _serve(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        try:
            data = await reader.read(self.read_size)
        except (ConnectionError, OSError) as e:
            logger.debug(f"Dropping callback connection after read error: {e}")
            return

        if self._result is None or self._result.done():
            return

        try:
            decision = evaluate_request(data, self.expected_state)
        except StateMismatchError:
            logger.warning(
                "Ignoring callback with mismatched state; still waiting for the "
                "authorization redirect"
            )
            return

        await self._respond(writer, decision.response)

        if self._result.done():
            return
        if decision.error is not None:
            logger.warning(f"Authorization redirect reported error: {decision.error}")
            self._result.set_exception(ProviderError(decision.error))
        elif decision.code is not None:
            logger.info("Received authorization code on loopback callback")
            self._result.set_result(decision.code)

    async def _respond(self, writer: asyncio.StreamWriter, response: bytes) -> None:
        try:
            writer.write(response)
            await writer.drain()
        except (ConnectionError, OSError) as e:
            # The browser may already have gone away; the outcome still stands.
            logger.debug(f"Could not write callback response: {e}")
