import pytest

from brisksocket import errors


@pytest.mark.parametrize(
    "cls, message",
    [
        (errors.InvalidFragmentError, "Invalid fragment"),
        (errors.InvalidUTF8Error, "Invalid UTF-8"),
        (errors.InvalidContinuationFrameError, "Invalid continuation frame"),
        (errors.InvalidUpgradeHeaderError, "Invalid upgrade header"),
        (errors.InvalidConnectionHeaderError, "Invalid connection header"),
        (errors.ConnectionClosedError, "Connection is closed"),
        (errors.InvalidCloseFrameError, "Invalid close frame"),
        (errors.InvalidCloseCodeError, "Invalid close code"),
        (errors.UnexpectedEOFError, "Unexpected EOF"),
        (errors.ReservedBitsNotZeroError, "Reserved bits are not zero"),
        (errors.ControlFrameFragmentedError, "Control frame must not be fragmented"),
        (errors.PingFrameTooLargeError, "Ping frame too large"),
        (errors.FrameTooLargeError, "Frame too large"),
        (errors.InvalidSecWebSocketVersionError, "Sec-Websocket-Version must be 13"),
        (errors.InvalidValueError, "Invalid value"),
        (errors.MissingSecWebSocketKeyError, "Sec-WebSocket-Key header is missing"),
        (errors.SendError, "Failed to send frame"),
    ],
)
def test_default_messages(cls, message):
    err = cls()
    assert str(err) == message
    assert isinstance(err, errors.WebSocketError)


def test_invalid_status_code_carries_status():
    err = errors.InvalidStatusCodeError(404)
    assert err.status == 404
    assert str(err) == "Invalid status code: 404"


def test_invalid_value_is_value_error():
    err = errors.InvalidValueError()
    with pytest.raises(ValueError) as info:
        raise err
    assert info.value is err
    assert str(info.value) == "Invalid value"


def test_custom_message_overrides_default():
    err = errors.FrameTooLargeError("payload of 10 bytes")
    assert str(err) == "payload of 10 bytes"


def test_send_error_keeps_cause():
    cause = OSError("broken pipe")
    err = errors.SendError()
    with pytest.raises(errors.SendError) as info:
        try:
            raise cause
        except OSError as exc:
            raise err from exc
    assert info.value is err
    assert info.value.__cause__ is cause
    assert str(info.value) == "Failed to send frame"