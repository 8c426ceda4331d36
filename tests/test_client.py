"""Tests for AsyncChatClient and the ChatClient sync wrapper."""

import httpx
import pytest

from conftest import ENDPOINT, SECRET, USERNAME, Recorder, form, ok
from tiny_robots.client import AsyncChatClient, ChatClient
from tiny_robots.errors import APIError, ConfigError
from tiny_robots.models.events import Message, OutboundMessage


def stream_event(event_id, content):
    return {"type": "message", "id": event_id, "message": {
        "id": 100 + event_id, "display_recipient": "general", "subject": "s",
        "content": content, "sender_email": "alice@x",
    }}


def make_client(rec, cls=AsyncChatClient):
    return cls(endpoint=ENDPOINT, username=USERNAME, secret=SECRET, transport=httpx.MockTransport(rec))


def client_message():
    return OutboundMessage.to_stream("general", "s", "hello")


def test_requires_credentials():
    with pytest.raises(ConfigError):
        AsyncChatClient(endpoint=ENDPOINT, username=USERNAME)


def test_reads_key_file(tmp_path):
    key_file = tmp_path / "api_key.txt"
    key_file.write_text(SECRET + "\n")
    client = AsyncChatClient(endpoint=ENDPOINT, username=USERNAME, key_file=key_file)
    assert client.username == USERNAME


class TestAsyncChatClient:
    @pytest.mark.asyncio
    async def test_on_each_message_skips_heartbeats_and_replies(self):
        rec = Recorder(
            ok(queue_id="q", last_event_id=-1),
            ok(events=[{"type": "heartbeat", "id": 0}, stream_event(1, "!hi")]),
            ok(id=555),
        )
        client = make_client(rec)
        seen = []

        async def handler(msg):
            seen.append(msg.content)
            await client.replyf(msg, "%s said hi!", msg.author)
            client.stop()

        await client.on_each_message(handler, interval=0)
        await client.close()

        assert seen == ["!hi"]
        assert [r.url.path for r in rec.requests] == [
            "/api/v1/register", "/api/v1/events", "/api/v1/messages",
        ]
        assert form(rec.last)["content"] == "alice@x said hi!"
        assert not client.running

    @pytest.mark.asyncio
    async def test_send_failure_is_raised(self):
        rec = Recorder({"result": "error", "msg": "Not allowed"})
        client = make_client(rec)
        with pytest.raises(APIError):
            await client.send(client_message())
        await client.close()

    @pytest.mark.asyncio
    async def test_replyf_without_args_keeps_percent(self):
        rec = Recorder(ok())
        client = make_client(rec)
        msg = Message(id="1", event_id="1", type="private", recipients=["a@x"], content="x")
        await client.replyf(msg, "100% done")
        await client.close()
        assert form(rec.last)["content"] == "100% done"


class TestChatClient:
    def test_send_blocks_until_done(self):
        rec = Recorder(ok(id=7))
        client = make_client(rec, cls=ChatClient)
        try:
            assert client.send(client_message()) == 7
        finally:
            client.close()
        assert form(rec.last)["to"] == "general"

    def test_on_each_event_with_sync_handler(self):
        rec = Recorder(
            ok(queue_id="q", last_event_id=-1),
            ok(events=[{"type": "heartbeat", "id": 0}, stream_event(1, "ping")]),
        )
        client = make_client(rec, cls=ChatClient)
        seen = []

        def handler(event):
            seen.append(event.event_id)
            if event.event_id == "1":
                client.stop()

        try:
            client.on_each_event(handler, interval=0)
        finally:
            client.close()
        assert seen == ["0", "1"]
