"""Asyncio WebSocket (RFC 6455) frames, connections, handshakes and an echo server."""

__version__ = "0.10.0"

__all__ = [
    "autobahn_client",
    "close",
    "echo_server",
    "errors",
    "fragment",
    "frame",
    "handshake",
    "mask",
    "upgrade",
    "websocket",
]