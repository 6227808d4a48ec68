"""Client side of the WebSocket opening handshake."""

from __future__ import annotations

import base64
import secrets
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .errors import (
    InvalidConnectionHeaderError,
    InvalidStatusCodeError,
    InvalidUpgradeHeaderError,
    UnexpectedEOFError,
    WebSocketError,
)
from .websocket import Role, WebSocket

_MAX_HEAD_LINES = 100
_SWITCHING_PROTOCOLS = 101


@dataclass
class HttpResponse:
    """Status line and headers of an HTTP response."""

    status: int
    reason: str = ""
    headers: list[tuple[str, str]] = field(default_factory=list)


def generate_key() -> str:
    """A random value for the ``Sec-WebSocket-Key`` header: 16 bytes, base64."""
    return base64.b64encode(secrets.token_bytes(16)).decode("ascii")


def _first_header(headers: Iterable[tuple[str, str]], name: str) -> str | None:
    wanted = name.lower()
    return next((value for key, value in headers if key.lower() == wanted), None)


def verify(response: HttpResponse) -> None:
    """Check that ``response`` accepts the upgrade to WebSocket."""
    if response.status != _SWITCHING_PROTOCOLS:
        raise InvalidStatusCodeError(response.status)
    upgrade = _first_header(response.headers, "Upgrade")
    if upgrade is None or upgrade.lower() != "websocket":
        raise InvalidUpgradeHeaderError()
    connection = _first_header(response.headers, "Connection")
    if connection is None or connection.lower() != "upgrade":
        raise InvalidConnectionHeaderError()


async def _read_head(reader) -> list[str]:
    lines: list[str] = []
    while True:
        line = await reader.readline()
        if not line.endswith(b"\n"):
            raise UnexpectedEOFError()
        text = line.rstrip(b"\r\n").decode("latin-1")
        if not text:
            return lines
        lines.append(text)
        if len(lines) > _MAX_HEAD_LINES:
            raise WebSocketError("Too many header lines")


def _parse_headers(lines: Iterable[str]) -> list[tuple[str, str]]:
    headers = []
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise WebSocketError(f"Malformed header line: {line!r}")
        headers.append((name.strip(), value.strip(" \t")))
    return headers


def _parse_response(lines: list[str]) -> HttpResponse:
    if not lines:
        raise WebSocketError("Empty HTTP response")
    parts = lines[0].split(" ", 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
        raise WebSocketError(f"Malformed status line: {lines[0]!r}")
    reason = parts[2] if len(parts) == 3 else ""
    return HttpResponse(int(parts[1]), reason, _parse_headers(lines[1:]))


def _request_headers(host: str, headers) -> list[tuple[str, str]]:
    extra = list(headers.items() if isinstance(headers, Mapping) else headers or ())
    overridden = {name.lower() for name, _ in extra}
    defaults = [
        ("Host", host),
        ("Upgrade", "websocket"),
        ("Connection", "upgrade"),
        ("Sec-WebSocket-Key", generate_key()),
        ("Sec-WebSocket-Version", "13"),
    ]
    return [pair for pair in defaults if pair[0].lower() not in overridden] + extra


async def client(reader, writer, host: str, path: str = "/", headers=None) -> tuple[WebSocket, HttpResponse]:
    """Send an upgrade request over an open stream pair and wait for the reply.

    ``headers`` may add to or replace the default handshake headers.
    Returns the client-side socket and the server's response.
    """
    lines = [f"GET {path} HTTP/1.1"]
    lines += [f"{name}: {value}" for name, value in _request_headers(host, headers)]
    writer.write(("\r\n".join(lines) + "\r\n\r\n").encode("latin-1"))
    await writer.drain()

    response = _parse_response(await _read_head(reader))
    verify(response)
    return WebSocket(reader, writer, Role.CLIENT), response