import pytest
from hypothesis import given
from hypothesis import strategies as st

from brisksocket.close import CloseCode, CloseCodeKind


@pytest.mark.parametrize(
    "code, kind",
    [
        (1000, CloseCodeKind.NORMAL),
        (1001, CloseCodeKind.AWAY),
        (1002, CloseCodeKind.PROTOCOL),
        (1003, CloseCodeKind.UNSUPPORTED),
        (1005, CloseCodeKind.STATUS),
        (1006, CloseCodeKind.ABNORMAL),
        (1007, CloseCodeKind.INVALID),
        (1008, CloseCodeKind.POLICY),
        (1009, CloseCodeKind.SIZE),
        (1010, CloseCodeKind.EXTENSION),
        (1011, CloseCodeKind.ERROR),
        (1012, CloseCodeKind.RESTART),
        (1013, CloseCodeKind.AGAIN),
        (1015, CloseCodeKind.TLS),
    ],
)
def test_named_codes(code, kind):
    assert CloseCode.from_code(code) == CloseCode(kind, code)


@pytest.mark.parametrize(
    "code, kind",
    [
        (1, CloseCodeKind.BAD),
        (999, CloseCodeKind.BAD),
        (1016, CloseCodeKind.RESERVED),
        (2999, CloseCodeKind.RESERVED),
        (3000, CloseCodeKind.IANA),
        (3999, CloseCodeKind.IANA),
        (4000, CloseCodeKind.LIBRARY),
        (4999, CloseCodeKind.LIBRARY),
    ],
)
def test_range_boundaries(code, kind):
    assert CloseCode.from_code(code).kind is kind


@pytest.mark.parametrize("code", [0, 1004, 1014, 5000, 65535])
def test_unassigned_codes_are_bad(code):
    assert CloseCode.from_code(code).kind is CloseCodeKind.BAD


@pytest.mark.parametrize("code", [1000, 1001, 1002, 1003, 1007, 1011, 3000, 4000])
def test_allowed_codes(code):
    assert CloseCode.from_code(code).is_allowed() is True


@pytest.mark.parametrize("code", [0, 999, 1005, 1006, 1015, 1016, 2999, 5000])
def test_forbidden_codes(code):
    assert CloseCode.from_code(code).is_allowed() is False


@pytest.mark.parametrize("code", [-1, 65536])
def test_out_of_range(code):
    with pytest.raises(ValueError):
        CloseCode.from_code(code)


@given(st.integers(min_value=0, max_value=0xFFFF))
def test_int_round_trip(code):
    close = CloseCode.from_code(code)
    assert int(close) == code
    assert CloseCode.from_code(int(close)) == close