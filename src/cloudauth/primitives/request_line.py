"""Minimal parser for the loopback redirect request.

Only the HTTP request line and its query string are understood. Headers and
body are ignored and query values are returned exactly as sent, without
percent-decoding. Keep every HTTP parsing concern in this module so the
listener never looks at raw bytes itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from cloudauth.models.flow import CallbackParams


@dataclass(frozen=True)
class RequestLine:
    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    version: str = "HTTP/1.1"

    def to_callback_params(self) -> CallbackParams:
        return CallbackParams(
            code=self.query.get("code"),
            state=self.query.get("state"),
            error=self.query.get("error"),
            error_description=self.query.get("error_description"),
        )


def parse_query(query: str) -> dict[str, str]:
    """Split ``a=1&b=2`` into a dict.

    Pairs without ``=`` are skipped and a repeated key keeps its last value.
    """
    params: dict[str, str] = {}
    for pair in query.split("&"):
        key, sep, value = pair.partition("=")
        if not sep:
            continue
        params[key] = value
    return params


def parse_request_line(data: bytes) -> RequestLine | None:
    """Parse the first line of a raw HTTP request.

    Args:
        data: Bytes from a single socket read; may be truncated

    Returns:
        The parsed request line, or None when the first line is not of the
        form ``METHOD TARGET [VERSION]``
    """
    text = data.decode("utf-8", errors="replace")
    line = text.splitlines()[0] if text else ""
    parts = line.split(" ")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None

    method, target = parts[0], parts[1]
    version = parts[2] if len(parts) > 2 else ""

    path, _, query = target.partition("?")
    return RequestLine(
        method=method,
        path=path,
        query=parse_query(query) if query else {},
        version=version,
    )
