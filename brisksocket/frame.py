"""WebSocket frames and their wire encoding."""

from __future__ import annotations

import enum
import secrets
from dataclasses import dataclass

from .errors import InvalidValueError
from .mask import unmask as _xor_mask


class OpCode(enum.IntEnum):
    """Frame opcodes defined by RFC 6455."""

    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA

    @classmethod
    def _missing_(cls, value):
        raise InvalidValueError(f"Invalid value: unknown opcode {value!r}")


def is_control(opcode: OpCode) -> bool:
    """Whether ``opcode`` denotes a control frame."""
    return opcode in (OpCode.CLOSE, OpCode.PING, OpCode.PONG)


@dataclass
class Frame:
    """A single WebSocket frame."""

    fin: bool
    opcode: OpCode
    payload: bytearray
    mask: bytes | None = None

    def __post_init__(self) -> None:
        self.opcode = OpCode(self.opcode)
        self.payload = bytearray(self.payload)
        if self.mask is not None:
            self.mask = bytes(self.mask)
            if len(self.mask) != 4:
                raise ValueError(f"mask must be 4 bytes long, got {len(self.mask)}")

    @classmethod
    def text(cls, payload) -> Frame:
        """A final text frame; the payload is not checked for UTF-8."""
        return cls(True, OpCode.TEXT, payload)

    @classmethod
    def binary(cls, payload) -> Frame:
        """A final binary frame."""
        return cls(True, OpCode.BINARY, payload)

    @classmethod
    def close(cls, code: int, reason: bytes = b"") -> Frame:
        """A close frame carrying ``code`` and ``reason``, neither validated."""
        return cls(True, OpCode.CLOSE, code.to_bytes(2, "big") + bytes(reason))

    @classmethod
    def close_raw(cls, payload) -> Frame:
        """A close frame with an unchecked raw payload."""
        return cls(True, OpCode.CLOSE, payload)

    @classmethod
    def pong(cls, payload) -> Frame:
        """A pong frame."""
        return cls(True, OpCode.PONG, payload)

    def is_utf8(self) -> bool:
        """Whether the payload is valid UTF-8."""
        try:
            self.payload.decode("utf-8")
        except UnicodeDecodeError:
            return False
        return True

    def apply_mask(self) -> None:
        """Mask the payload, choosing a random key if the frame has none."""
        if self.mask is None:
            self.mask = secrets.token_bytes(4)
        _xor_mask(self.payload, self.mask)

    def unmask(self) -> None:
        """Unmask the payload in place; does nothing for unmasked frames."""
        if self.mask is not None:
            _xor_mask(self.payload, self.mask)

    def fmt_head(self) -> bytes:
        """The frame header: first byte, length field and masking key."""
        length = len(self.payload)
        first = (0x80 if self.fin else 0) | int(self.opcode)
        if length < 126:
            head = bytearray((first, length))
        elif length < 65536:
            head = bytearray((first, 126)) + length.to_bytes(2, "big")
        else:
            head = bytearray((first, 127)) + length.to_bytes(8, "big")
        if self.mask is not None:
            head[1] |= 0x80
            head += self.mask
        return bytes(head)

    def encode(self) -> bytes:
        """The whole frame as it goes on the wire."""
        return self.fmt_head() + bytes(self.payload)

    async def writev(self, writer) -> None:
        """Write header and payload to an asyncio stream writer."""
        writer.writelines((self.fmt_head(), bytes(self.payload)))
        await writer.drain()