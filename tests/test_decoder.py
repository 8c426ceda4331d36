"""Tests for the event decoder."""

import pytest

from tiny_robots.decoder import decode_event
from tiny_robots.errors import DecodeError
from tiny_robots.models.events import Heartbeat, Message, MessageType


def message_event(event_id, display_recipient, **fields):
    message = {
        "id": 501,
        "type": "stream",
        "display_recipient": display_recipient,
        "subject": "greetings",
        "content": "!hi",
        "sender_email": "alice@example.org",
        "sender_full_name": "Alice",
    }
    message.update(fields)
    return {"type": "message", "id": event_id, "message": message}


def test_heartbeat():
    event = decode_event("heartbeat", {"type": "heartbeat", "id": 3})
    assert event == Heartbeat(id="3")
    assert event.event_id == "3"


def test_heartbeat_without_id():
    with pytest.raises(DecodeError):
        decode_event("heartbeat", {"type": "heartbeat"})


def test_stream_recipient_string():
    event = decode_event("message", message_event(7, "general"))

    assert isinstance(event, Message)
    assert event.type == MessageType.STREAM
    assert event.stream == "general"
    assert event.recipients == []
    assert event.id == "501"
    assert event.event_id == "7"
    assert event.subject == "greetings"
    assert event.author == "alice@example.org"
    assert event.sender_full_name == "Alice"


def test_private_recipient_list():
    recipients = [
        {"email": "a@x", "full_name": "A", "id": 1},
        {"email": "b@x", "full_name": "B", "id": 2},
    ]
    event = decode_event("message", message_event("8", recipients, type="private", subject=""))

    assert event.type == MessageType.PRIVATE
    assert event.stream == ""
    assert set(event.recipients) == {"a@x", "b@x"}
    assert event.event_id == "8"


def test_numeric_string_ids():
    event = decode_event("message", message_event("12", "general", id="900"))
    assert event.id == "900"
    assert event.event_id == "12"


def test_message_id_falls_back_to_event_id():
    raw = message_event(12, "general")
    del raw["message"]["id"]
    event = decode_event("message", raw)
    assert event.id == "12"


@pytest.mark.parametrize("recipient", [{"email": "a@x"}, 42, None])
def test_unknown_recipient_shape(recipient):
    with pytest.raises(DecodeError, match="unknown recipient shape") as exc_info:
        decode_event("message", message_event(9, recipient))
    assert exc_info.value.event_id == "9"


def test_recipient_record_without_email():
    with pytest.raises(DecodeError) as exc_info:
        decode_event("message", message_event(10, [{"full_name": "Nobody"}]))
    assert exc_info.value.event_id == "10"


def test_recipient_record_not_an_object():
    with pytest.raises(DecodeError):
        decode_event("message", message_event(10, ["a@x"]))


def test_message_without_message_object():
    with pytest.raises(DecodeError):
        decode_event("message", {"type": "message", "id": 4})


def test_unknown_event_type_keeps_id():
    with pytest.raises(DecodeError, match="unknown event type: typing") as exc_info:
        decode_event("typing", {"type": "typing", "id": 11, "op": "start"})
    assert exc_info.value.event_type == "typing"
    assert exc_info.value.event_id == "11"


@pytest.mark.parametrize("raw_id", [7.9, "7.5", True])
def test_heartbeat_rejects_non_integral_id(raw_id):
    with pytest.raises(DecodeError):
        decode_event("heartbeat", {"type": "heartbeat", "id": raw_id})


def test_integral_float_id_is_accepted():
    assert decode_event("heartbeat", {"type": "heartbeat", "id": 7.0}).event_id == "7"


def test_message_without_event_id_is_rejected():
    raw = message_event(None, "general", id=99999)
    del raw["id"]
    with pytest.raises(DecodeError, match="without a valid id") as exc_info:
        decode_event("message", raw)
    assert exc_info.value.event_id is None


def test_message_with_fractional_event_id_is_rejected():
    with pytest.raises(DecodeError):
        decode_event("message", message_event(12.5, "general"))
