"""Exceptions raised by the WebSocket protocol implementation."""

from __future__ import annotations


class WebSocketError(Exception):
    """Base class for every WebSocket protocol error."""

    default_message = "WebSocket error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidFragmentError(WebSocketError):
    default_message = "Invalid fragment"


class InvalidUTF8Error(WebSocketError):
    default_message = "Invalid UTF-8"


class InvalidContinuationFrameError(WebSocketError):
    default_message = "Invalid continuation frame"


class InvalidStatusCodeError(WebSocketError):
    """The handshake response carried an unexpected HTTP status."""

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(f"Invalid status code: {status}")


class InvalidUpgradeHeaderError(WebSocketError):
    default_message = "Invalid upgrade header"


class InvalidConnectionHeaderError(WebSocketError):
    default_message = "Invalid connection header"


class ConnectionClosedError(WebSocketError):
    default_message = "Connection is closed"


class InvalidCloseFrameError(WebSocketError):
    default_message = "Invalid close frame"


class InvalidCloseCodeError(WebSocketError):
    default_message = "Invalid close code"


class UnexpectedEOFError(WebSocketError):
    default_message = "Unexpected EOF"


class ReservedBitsNotZeroError(WebSocketError):
    default_message = "Reserved bits are not zero"


class ControlFrameFragmentedError(WebSocketError):
    default_message = "Control frame must not be fragmented"


class PingFrameTooLargeError(WebSocketError):
    default_message = "Ping frame too large"


class FrameTooLargeError(WebSocketError):
    default_message = "Frame too large"


class InvalidSecWebSocketVersionError(WebSocketError):
    default_message = "Sec-Websocket-Version must be 13"


class InvalidValueError(WebSocketError, ValueError):
    default_message = "Invalid value"


class MissingSecWebSocketKeyError(WebSocketError):
    default_message = "Sec-WebSocket-Key header is missing"


class SendError(WebSocketError):
    """A frame the reader was obliged to send could not be sent."""

    default_message = "Failed to send frame"