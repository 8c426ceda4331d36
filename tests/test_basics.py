"""Basic unit tests for the tiny-robots package."""

from tiny_robots import (
    APIError,
    AsyncChatClient,
    ChatClient,
    ConfigError,
    DecodeError,
    EventType,
    MessageType,
    TinyRobotsError,
    TransportError,
    ValidationError,
    __version__,
)


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert AsyncChatClient is not None
    assert ChatClient is not None


def test_error_hierarchy():
    for cls in (TransportError, APIError, DecodeError, ValidationError, ConfigError):
        assert issubclass(cls, TinyRobotsError)


def test_error_attributes():
    err = TinyRobotsError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    api = APIError("events", "Bad event queue id: abc", details={"status": 400})
    assert api.code == "api_error"
    assert api.operation == "events"
    assert api.message == "Bad event queue id: abc"
    assert str(api) == "events: Bad event queue id: abc"
    assert api.details == {"status": 400}

    dec = DecodeError("unknown event type: typing", event_type="typing", event_id="7")
    assert dec.event_type == "typing"
    assert dec.event_id == "7"


def test_constants():
    assert EventType.MESSAGE == "message"
    assert EventType.HEARTBEAT == "heartbeat"
    assert MessageType.PRIVATE == "private"
    assert MessageType.STREAM == "stream"
