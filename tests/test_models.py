"""Tests for event, outbound message and queue session models."""

import pydantic
import pytest

from tiny_robots.errors import ValidationError
from tiny_robots.models.events import Heartbeat, Message, MessageType, OutboundMessage
from tiny_robots.models.queue import QueueSession, RegisterResponse


def private_message(**fields):
    data = dict(id="1", event_id="1", type="private", recipients=["a@x"], subject="s", content="hi")
    data.update(fields)
    return Message(**data)


class TestReply:
    def test_private_reply_keeps_recipients(self):
        reply = private_message().reply("new body")

        assert reply.type == MessageType.PRIVATE
        assert reply.recipients == ["a@x"]
        assert reply.subject == "s"
        assert reply.content == "new body"
        assert reply.stream == ""

    def test_stream_reply_keeps_stream_and_subject(self):
        msg = Message(id="2", event_id="5", type="stream", stream="general", subject="lunch", content="!hi")
        reply = msg.reply("bob said hi!")

        assert reply == OutboundMessage(type="stream", stream="general", subject="lunch", content="bob said hi!")
        assert reply.recipients == []

    def test_reply_copies_recipient_list(self):
        msg = private_message()
        reply = msg.reply("x")
        reply.recipients.append("mallory@x")
        assert msg.recipients == ["a@x"]

    def test_reply_to_unknown_type_fails_fast(self):
        with pytest.raises(ValidationError, match="unknown message type"):
            private_message(type="broadcast").reply("x")


class TestIds:
    def test_int_and_string_ids_normalise(self):
        assert Heartbeat(id=5).id == "5"
        assert Heartbeat(id="05").id == "5"
        assert Heartbeat(id=-1).id == "-1"

    @pytest.mark.parametrize("bad", ["abc", True, None, 1.5])
    def test_rejects_non_numeric_ids(self, bad):
        with pytest.raises(pydantic.ValidationError):
            Heartbeat(id=bad)


class TestQueueSession:
    def test_advance_returns_new_value(self):
        session = QueueSession(queue_id="q1", last_event_id=-1)
        moved = session.advance("4")

        assert session.last_event_id == "-1"
        assert moved == QueueSession(queue_id="q1", last_event_id="4")

    def test_frozen(self):
        session = QueueSession(queue_id="q1", last_event_id="3")
        with pytest.raises(pydantic.ValidationError):
            session.last_event_id = "4"

    def test_register_response_accepts_numeric_string(self):
        resp = RegisterResponse.model_validate({"result": "success", "queue_id": "q", "last_event_id": "17"})
        assert resp.last_event_id == "17"
