"""
Messages REST API: post fresh messages and replies.
"""

from __future__ import annotations

from typing import Optional

from tiny_robots.errors import ValidationError
from tiny_robots.models.events import Message, MessageType, OutboundMessage
from tiny_robots.transport.envelope import build_message_params
from tiny_robots.transport.http import HttpClient


def validate_outbound(message: OutboundMessage) -> None:
    """Check that the populated addressing field matches the delivery mode."""
    if message.type == MessageType.PRIVATE:
        if not message.recipients:
            raise ValidationError("private message without recipients")
        if message.stream:
            raise ValidationError("private message must not name a stream")
    elif message.type == MessageType.STREAM:
        if not message.stream:
            raise ValidationError("stream message without a stream name")
        if message.recipients:
            raise ValidationError("stream message must not list recipients")
    else:
        raise ValidationError(f"unknown message type: {message.type}")


class MessagesAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def send(self, message: OutboundMessage) -> Optional[int]:
        """Send a message. Returns the new message id when the platform reports one."""
        validate_outbound(message)
        body = await self._http.post("messages", build_message_params(message))
        message_id = body.get("id")
        return message_id if isinstance(message_id, int) else None

    async def reply(self, message: Message, content: str) -> Optional[int]:
        return await self.send(message.reply(content))
