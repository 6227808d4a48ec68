"""Close status codes carried in WebSocket close frames."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class CloseCodeKind(enum.Enum):
    """The category a close status code falls into."""

    NORMAL = "normal"
    AWAY = "away"
    PROTOCOL = "protocol"
    UNSUPPORTED = "unsupported"
    STATUS = "status"
    ABNORMAL = "abnormal"
    INVALID = "invalid"
    POLICY = "policy"
    SIZE = "size"
    EXTENSION = "extension"
    ERROR = "error"
    RESTART = "restart"
    AGAIN = "again"
    TLS = "tls"
    RESERVED = "reserved"
    IANA = "iana"
    LIBRARY = "library"
    BAD = "bad"


_NAMED = {
    1000: CloseCodeKind.NORMAL,
    1001: CloseCodeKind.AWAY,
    1002: CloseCodeKind.PROTOCOL,
    1003: CloseCodeKind.UNSUPPORTED,
    1005: CloseCodeKind.STATUS,
    1006: CloseCodeKind.ABNORMAL,
    1007: CloseCodeKind.INVALID,
    1008: CloseCodeKind.POLICY,
    1009: CloseCodeKind.SIZE,
    1010: CloseCodeKind.EXTENSION,
    1011: CloseCodeKind.ERROR,
    1012: CloseCodeKind.RESTART,
    1013: CloseCodeKind.AGAIN,
    1015: CloseCodeKind.TLS,
}

_FORBIDDEN = frozenset(
    {
        CloseCodeKind.BAD,
        CloseCodeKind.RESERVED,
        CloseCodeKind.STATUS,
        CloseCodeKind.ABNORMAL,
        CloseCodeKind.TLS,
    }
)


def _classify(code: int) -> CloseCodeKind:
    named = _NAMED.get(code)
    if named is not None:
        return named
    if 1 <= code <= 999:
        return CloseCodeKind.BAD
    if 1016 <= code <= 2999:
        return CloseCodeKind.RESERVED
    if 3000 <= code <= 3999:
        return CloseCodeKind.IANA
    if 4000 <= code <= 4999:
        return CloseCodeKind.LIBRARY
    return CloseCodeKind.BAD


@dataclass(frozen=True)
class CloseCode:
    """A close status code together with its category."""

    kind: CloseCodeKind
    code: int

    @classmethod
    def from_code(cls, code: int) -> CloseCode:
        """Classify a 16-bit status code."""
        if not 0 <= code <= 0xFFFF:
            raise ValueError(f"close code out of 16-bit range: {code}")
        return cls(_classify(code), code)

    def is_allowed(self) -> bool:
        """Whether this code may appear in a close frame on the wire."""
        return self.kind not in _FORBIDDEN

    def __int__(self) -> int:
        return self.code