"""Reassembly of fragmented WebSocket messages into whole frames."""

from __future__ import annotations

import codecs

from .errors import (
    ConnectionClosedError,
    InvalidContinuationFrameError,
    InvalidFragmentError,
    InvalidUTF8Error,
    SendError,
)
from .frame import Frame, OpCode
from .websocket import SendFn, WebSocket, WebSocketRead


def _decode_utf8(decoder, payload) -> bytes:
    """Feed ``payload`` to an incremental decoder and return the complete,
    valid part; an incomplete trailing sequence stays inside the decoder."""
    try:
        text = decoder.decode(bytes(payload))
    except UnicodeDecodeError:
        raise InvalidUTF8Error() from None
    return text.encode("utf-8")


class _Fragments:
    """Collects the fragments of one message until its final frame arrives."""

    def __init__(self) -> None:
        self._buffer: bytearray | None = None
        self._decoder = None
        self._opcode = OpCode.CLOSE

    def accumulate(self, frame: Frame) -> Frame | None:
        """Take one frame; return a whole message once it is complete."""
        opcode = frame.opcode
        if opcode in (OpCode.TEXT, OpCode.BINARY):
            if frame.fin:
                if self._buffer is not None:
                    raise InvalidFragmentError()
                return Frame(True, opcode, frame.payload)
            self._start(opcode, frame.payload)
            return None

        if opcode is OpCode.CONTINUATION:
            if self._buffer is None:
                raise InvalidContinuationFrameError()
            if self._decoder is not None:
                self._buffer += _decode_utf8(self._decoder, frame.payload)
            else:
                self._buffer += frame.payload
            if frame.fin:
                return self._finish()
            return None

        return frame

    def _start(self, opcode: OpCode, payload) -> None:
        if opcode is OpCode.TEXT:
            decoder = codecs.getincrementaldecoder("utf-8")()
            buffer = bytearray(_decode_utf8(decoder, payload))
        else:
            decoder = None
            buffer = bytearray(payload)
        self._buffer = buffer
        self._decoder = decoder
        self._opcode = opcode

    def _finish(self) -> Frame:
        payload = self._buffer
        self._buffer = None
        self._decoder = None
        return Frame(True, self._opcode, payload)


class FragmentCollector:
    """Wraps a :class:`WebSocket` and returns only whole messages.

    Payloads are buffered in memory until the final fragment arrives.
    Text messages are guaranteed to hold valid UTF-8.
    """

    def __init__(self, ws: WebSocket) -> None:
        self._reader, self._writer, self._read_half, self._write_half = ws._into_parts()
        self._fragments = _Fragments()

    async def read_frame(self) -> Frame:
        """Read frames until a complete message or a control frame is available."""
        while True:
            outcome = await self._read_half.read_frame_inner(self._reader)
            is_closed = self._write_half.closed
            if outcome.obligated is not None and not is_closed:
                await self.write_frame(outcome.obligated)
            if outcome.error is not None:
                raise outcome.error
            frame = outcome.frame
            if frame is None:
                continue
            if is_closed and frame.opcode is not OpCode.CLOSE:
                raise ConnectionClosedError()
            message = self._fragments.accumulate(frame)
            if message is not None:
                return message

    async def write_frame(self, frame: Frame) -> None:
        """Write one frame, as :meth:`WebSocket.write_frame` does."""
        await self._write_half.write_frame(self._writer, frame)

    def into_inner(self):
        """The underlying ``(reader, writer)`` pair."""
        return self._reader, self._writer


class FragmentCollectorRead:
    """Collects whole messages from the read side of a split connection."""

    def __init__(self, ws_read: WebSocketRead) -> None:
        self._reader, self._read_half = ws_read._into_parts()
        self._fragments = _Fragments()

    async def read_frame(self, send_fn: SendFn) -> Frame:
        """Read the next whole message; automatic replies go to ``send_fn``,
        which must write them on the write side of the connection."""
        while True:
            outcome = await self._read_half.read_frame_inner(self._reader)
            if outcome.obligated is not None:
                try:
                    await send_fn(outcome.obligated)
                except Exception as exc:
                    raise SendError(f"Failed to send frame: {exc}") from exc
            if outcome.error is not None:
                raise outcome.error
            if outcome.frame is None:
                continue
            message = self._fragments.accumulate(outcome.frame)
            if message is not None:
                return message