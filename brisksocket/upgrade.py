"""Server side of the WebSocket opening handshake."""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Iterable
from dataclasses import dataclass, field

from .errors import (
    InvalidSecWebSocketVersionError,
    MissingSecWebSocketKeyError,
    UnexpectedEOFError,
    WebSocketError,
)
from .handshake import HttpResponse
from .websocket import Role, WebSocket

_ACCEPT_MAGIC = b"258EAFA5-E914-47DA-95CA-C5AB0DC85B11"
_MAX_HEAD_LINES = 100
_ASCII_WHITESPACE = " \t\n\r\x0c"


@dataclass
class UpgradeRequest:
    """Request line and headers of an incoming HTTP request."""

    method: str
    target: str
    version: str = "HTTP/1.1"
    headers: list[tuple[str, str]] = field(default_factory=list)


async def read_request(reader) -> UpgradeRequest:
    """Read and parse an HTTP request head from ``reader``."""
    lines: list[str] = []
    while True:
        line = await reader.readline()
        if not line.endswith(b"\n"):
            raise UnexpectedEOFError()
        text = line.rstrip(b"\r\n").decode("latin-1")
        if not text:
            break
        lines.append(text)
        if len(lines) > _MAX_HEAD_LINES:
            raise WebSocketError("Too many header lines")

    if not lines:
        raise WebSocketError("Empty HTTP request")
    parts = lines[0].split(" ")
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        raise WebSocketError(f"Malformed request line: {lines[0]!r}")

    headers = []
    for line in lines[1:]:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise WebSocketError(f"Malformed header line: {line!r}")
        headers.append((name.strip(), value.strip(" \t")))
    return UpgradeRequest(parts[0], parts[1], parts[2], headers)


def sec_websocket_accept(key: str | bytes) -> str:
    """The ``Sec-WebSocket-Accept`` value answering ``key``."""
    raw = key.encode("latin-1") if isinstance(key, str) else bytes(key)
    return base64.b64encode(hashlib.sha1(raw + _ACCEPT_MAGIC).digest()).decode("ascii")


def header_contains_value(headers: Iterable[tuple[str, str]], name: str, value: str) -> bool:
    """Whether any header called ``name`` lists ``value`` among its
    comma-separated items, compared without regard to ASCII case."""
    wanted_name = name.lower()
    wanted = value.lower()
    return any(
        item.strip(_ASCII_WHITESPACE).lower() == wanted
        for key, content in headers
        if key.lower() == wanted_name
        for item in content.split(",")
    )


def is_upgrade_request(request: UpgradeRequest) -> bool:
    """Whether ``request`` asks for an upgrade to WebSocket."""
    return header_contains_value(
        request.headers, "Connection", "Upgrade"
    ) and header_contains_value(request.headers, "Upgrade", "websocket")


def _first_header(headers: Iterable[tuple[str, str]], name: str) -> str | None:
    wanted = name.lower()
    return next((value for key, value in headers if key.lower() == wanted), None)


def upgrade(request: UpgradeRequest) -> HttpResponse:
    """Build the 101 response accepting ``request``.

    Only ``Sec-WebSocket-Key`` and ``Sec-WebSocket-Version`` are checked.
    """
    key = _first_header(request.headers, "Sec-WebSocket-Key")
    if key is None:
        raise MissingSecWebSocketKeyError()
    if _first_header(request.headers, "Sec-WebSocket-Version") != "13":
        raise InvalidSecWebSocketVersionError()
    return HttpResponse(
        101,
        "Switching Protocols",
        [
            ("Connection", "upgrade"),
            ("Upgrade", "websocket"),
            ("Sec-WebSocket-Accept", sec_websocket_accept(key)),
        ],
    )


def _render(response: HttpResponse) -> bytes:
    lines = [f"HTTP/1.1 {response.status} {response.reason}"]
    lines += [f"{name}: {value}" for name, value in response.headers]
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")


async def accept(reader, writer) -> tuple[WebSocket, UpgradeRequest]:
    """Read an upgrade request, answer it, and return the server-side socket
    together with the request."""
    request = await read_request(reader)
    response = upgrade(request)
    writer.write(_render(response))
    await writer.drain()
    return WebSocket(reader, writer, Role.SERVER), request