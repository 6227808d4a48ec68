"""WebSocket protocol over a pair of asyncio streams after the handshake."""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .close import CloseCode
from .errors import (
    ConnectionClosedError,
    ControlFrameFragmentedError,
    FrameTooLargeError,
    InvalidCloseCodeError,
    InvalidCloseFrameError,
    InvalidUTF8Error,
    PingFrameTooLargeError,
    ReservedBitsNotZeroError,
    SendError,
    UnexpectedEOFError,
    WebSocketError,
)
from .frame import Frame, OpCode, is_control

DEFAULT_MAX_MESSAGE_SIZE = 64 << 20
DEFAULT_WRITEV_THRESHOLD = 1024


class Role(enum.Enum):
    """Which end of the connection this socket is."""

    SERVER = "server"
    CLIENT = "client"


@dataclass
class _ReadOutcome:
    """What one read produced: a frame for the caller, a frame that must be
    sent back, and an error to raise once the send obligation is met."""

    frame: Frame | None = None
    obligated: Frame | None = None
    error: WebSocketError | None = None


async def _read_exact(reader, size: int) -> bytes:
    if size == 0:
        return b""
    try:
        return await reader.readexactly(size)
    except asyncio.IncompleteReadError:
        raise UnexpectedEOFError() from None


def _is_utf8(data) -> bool:
    try:
        bytes(data).decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


class _ReadHalf:
    """Incoming side of the protocol: frame parsing and automatic replies."""

    def __init__(self, role: Role) -> None:
        self.role = role
        self.auto_apply_mask = True
        self.auto_close = True
        self.auto_pong = True
        self.writev_threshold = DEFAULT_WRITEV_THRESHOLD
        self.max_message_size = DEFAULT_MAX_MESSAGE_SIZE

    async def read_frame_inner(self, reader) -> _ReadOutcome:
        """Read one frame. Parse errors are raised; the outcome may carry a
        frame the caller is obliged to send unless its write side is closed."""
        frame = await self._parse_frame(reader)

        if self.role is Role.SERVER:
            frame.unmask()

        if frame.opcode is OpCode.CLOSE and self.auto_close:
            payload = frame.payload
            if len(payload) == 1:
                return _ReadOutcome(error=InvalidCloseFrameError())
            if len(payload) >= 2:
                code = CloseCode.from_code(int.from_bytes(payload[:2], "big"))
                if not _is_utf8(payload[2:]):
                    return _ReadOutcome(error=InvalidUTF8Error())
                if not code.is_allowed():
                    return _ReadOutcome(
                        obligated=Frame.close(1002, bytes(payload[2:])),
                        error=InvalidCloseCodeError(),
                    )
            return _ReadOutcome(frame=frame, obligated=Frame.close_raw(bytes(payload)))

        if frame.opcode is OpCode.PING and self.auto_pong:
            return _ReadOutcome(obligated=Frame.pong(frame.payload))

        if frame.opcode is OpCode.TEXT and frame.fin and not frame.is_utf8():
            return _ReadOutcome(error=InvalidUTF8Error())

        return _ReadOutcome(frame=frame)

    async def _parse_frame(self, reader) -> Frame:
        first, second = await _read_exact(reader, 2)

        fin = bool(first & 0x80)
        if first & 0x70:
            raise ReservedBitsNotZeroError()

        opcode = OpCode(first & 0x0F)
        masked = bool(second & 0x80)
        length_code = second & 0x7F
        extra = {126: 2, 127: 8}.get(length_code, 0)

        rest = await _read_exact(reader, extra + (4 if masked else 0))
        payload_len = int.from_bytes(rest[:extra], "big") if extra else length_code
        mask = rest[extra:] if masked else None

        if is_control(opcode) and not fin:
            raise ControlFrameFragmentedError()
        if opcode is OpCode.PING and payload_len > 125:
            raise PingFrameTooLargeError()
        if payload_len >= self.max_message_size:
            raise FrameTooLargeError()

        payload = await _read_exact(reader, payload_len)
        return Frame(fin, opcode, payload, mask)


class _WriteHalf:
    """Outgoing side of the protocol: masking, close tracking and writing."""

    def __init__(self, role: Role) -> None:
        self.role = role
        self.closed = False
        self.auto_apply_mask = True
        self.vectored = True
        self.writev_threshold = DEFAULT_WRITEV_THRESHOLD

    async def write_frame(self, writer, frame: Frame) -> None:
        if self.role is Role.CLIENT and self.auto_apply_mask:
            frame.apply_mask()

        if frame.opcode is OpCode.CLOSE:
            self.closed = True
        elif self.closed:
            raise ConnectionClosedError()

        if self.vectored and len(frame.payload) > self.writev_threshold:
            await frame.writev(writer)
        else:
            writer.write(frame.encode())
            await writer.drain()


class WebSocket:
    """A WebSocket connection over a reader and writer that finished the handshake.

    ``reader`` needs ``readexactly``; ``writer`` needs ``write``,
    ``writelines`` and ``drain``, as asyncio streams provide.
    """

    def __init__(self, reader, writer, role: Role) -> None:
        self._reader = reader
        self._writer = writer
        self._read_half = _ReadHalf(role)
        self._write_half = _WriteHalf(role)

    @property
    def writev(self) -> bool:
        """Whether large payloads are written as separate header and body."""
        return self._write_half.vectored

    @writev.setter
    def writev(self, value: bool) -> None:
        self._write_half.vectored = value

    @property
    def writev_threshold(self) -> int:
        return self._write_half.writev_threshold

    @writev_threshold.setter
    def writev_threshold(self, value: int) -> None:
        self._read_half.writev_threshold = value
        self._write_half.writev_threshold = value

    @property
    def auto_close(self) -> bool:
        """Whether a received close frame is answered automatically."""
        return self._read_half.auto_close

    @auto_close.setter
    def auto_close(self, value: bool) -> None:
        self._read_half.auto_close = value

    @property
    def auto_pong(self) -> bool:
        """Whether a received ping is answered with a pong automatically."""
        return self._read_half.auto_pong

    @auto_pong.setter
    def auto_pong(self, value: bool) -> None:
        self._read_half.auto_pong = value

    @property
    def max_message_size(self) -> int:
        """Frames whose payload is at least this many bytes are rejected."""
        return self._read_half.max_message_size

    @max_message_size.setter
    def max_message_size(self, value: int) -> None:
        self._read_half.max_message_size = value

    @property
    def auto_apply_mask(self) -> bool:
        """Whether client frames are masked before they are written."""
        return self._write_half.auto_apply_mask

    @auto_apply_mask.setter
    def auto_apply_mask(self, value: bool) -> None:
        self._read_half.auto_apply_mask = value
        self._write_half.auto_apply_mask = value

    @property
    def is_closed(self) -> bool:
        """Whether a close frame has been written."""
        return self._write_half.closed

    def split(self) -> tuple[WebSocketRead, WebSocketWrite]:
        """Separate the connection into a read side and a write side."""
        return (
            WebSocketRead(self._reader, self._read_half),
            WebSocketWrite(self._writer, self._write_half),
        )

    def into_inner(self):
        """The underlying ``(reader, writer)`` pair."""
        return self._reader, self._writer

    def _into_parts(self):
        return self._reader, self._writer, self._read_half, self._write_half

    async def write_frame(self, frame: Frame) -> None:
        """Write one frame; after a close frame only close frames may follow."""
        await self._write_half.write_frame(self._writer, frame)

    async def flush(self) -> None:
        """Wait until buffered output has been handed to the transport."""
        await self._writer.drain()

    async def read_frame(self) -> Frame:
        """Read the next frame, answering pings and closes as configured.

        Text frames with FIN set are guaranteed to hold valid UTF-8.
        """
        while True:
            outcome = await self._read_half.read_frame_inner(self._reader)
            is_closed = self._write_half.closed
            if outcome.obligated is not None and not is_closed:
                await self._write_half.write_frame(self._writer, outcome.obligated)
            if outcome.error is not None:
                raise outcome.error
            frame = outcome.frame
            if frame is not None:
                if is_closed and frame.opcode is not OpCode.CLOSE:
                    raise ConnectionClosedError()
                return frame


SendFn = Callable[[Frame], Awaitable[None]]


class WebSocketRead:
    """The reading side of a split connection."""

    def __init__(self, reader, read_half: _ReadHalf) -> None:
        self._reader = reader
        self._read_half = read_half

    @property
    def writev_threshold(self) -> int:
        return self._read_half.writev_threshold

    @writev_threshold.setter
    def writev_threshold(self, value: int) -> None:
        self._read_half.writev_threshold = value

    @property
    def auto_close(self) -> bool:
        return self._read_half.auto_close

    @auto_close.setter
    def auto_close(self, value: bool) -> None:
        self._read_half.auto_close = value

    @property
    def auto_pong(self) -> bool:
        return self._read_half.auto_pong

    @auto_pong.setter
    def auto_pong(self, value: bool) -> None:
        self._read_half.auto_pong = value

    @property
    def max_message_size(self) -> int:
        return self._read_half.max_message_size

    @max_message_size.setter
    def max_message_size(self, value: int) -> None:
        self._read_half.max_message_size = value

    @property
    def auto_apply_mask(self) -> bool:
        return self._read_half.auto_apply_mask

    @auto_apply_mask.setter
    def auto_apply_mask(self, value: bool) -> None:
        self._read_half.auto_apply_mask = value

    def into_inner(self):
        """The underlying reader."""
        return self._reader

    def _into_parts(self):
        return self._reader, self._read_half

    async def read_frame(self, send_fn: SendFn) -> Frame:
        """Read the next frame; automatic replies are passed to ``send_fn``,
        which must write them on the write side of this connection."""
        while True:
            outcome = await self._read_half.read_frame_inner(self._reader)
            if outcome.obligated is not None:
                try:
                    await send_fn(outcome.obligated)
                except Exception as exc:
                    raise SendError(f"Failed to send frame: {exc}") from exc
            if outcome.error is not None:
                raise outcome.error
            if outcome.frame is not None:
                return outcome.frame


class WebSocketWrite:
    """The writing side of a split connection."""

    def __init__(self, writer, write_half: _WriteHalf) -> None:
        self._writer = writer
        self._write_half = write_half

    @property
    def writev(self) -> bool:
        return self._write_half.vectored

    @writev.setter
    def writev(self, value: bool) -> None:
        self._write_half.vectored = value

    @property
    def writev_threshold(self) -> int:
        return self._write_half.writev_threshold

    @writev_threshold.setter
    def writev_threshold(self, value: int) -> None:
        self._write_half.writev_threshold = value

    @property
    def auto_apply_mask(self) -> bool:
        return self._write_half.auto_apply_mask

    @auto_apply_mask.setter
    def auto_apply_mask(self, value: bool) -> None:
        self._write_half.auto_apply_mask = value

    @property
    def is_closed(self) -> bool:
        return self._write_half.closed

    def into_inner(self):
        """The underlying writer."""
        return self._writer

    async def write_frame(self, frame: Frame) -> None:
        await self._write_half.write_frame(self._writer, frame)

    async def flush(self) -> None:
        await self._writer.drain()


def after_handshake_split(reader, writer, role: Role) -> tuple[WebSocketRead, WebSocketWrite]:
    """Build separate read and write sides for a connection past its handshake."""
    return (
        WebSocketRead(reader, _ReadHalf(role)),
        WebSocketWrite(writer, _WriteHalf(role)),
    )