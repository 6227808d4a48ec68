"""XOR masking of WebSocket payloads."""

from __future__ import annotations

from collections.abc import Iterable


def unmask(payload: bytearray, mask: bytes | Iterable[int]) -> None:
    """XOR ``payload`` in place with the repeating 4-byte ``mask``.

    Applying the same mask twice restores the original payload.
    """
    key = bytes(mask)
    if len(key) != 4:
        raise ValueError(f"mask must be 4 bytes long, got {len(key)}")
    size = len(payload)
    if not size:
        return
    stream = (key * (size // 4 + 1))[:size]
    mixed = int.from_bytes(payload, "little") ^ int.from_bytes(stream, "little")
    payload[:] = mixed.to_bytes(size, "little")