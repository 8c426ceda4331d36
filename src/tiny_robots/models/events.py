"""
Event models delivered by the event queue, and outbound messages.
"""

from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field

from tiny_robots.errors import ValidationError


class EventType:
    MESSAGE = "message"
    HEARTBEAT = "heartbeat"


class MessageType:
    """Delivery mode of a message."""
    PRIVATE = "private"
    STREAM = "stream"


def coerce_id(value: Any) -> str:
    # The platform sends ids as numbers or numeric strings.
    if isinstance(value, bool):
        raise ValueError("id must be an integer, not a boolean")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return str(int(text))
    raise ValueError(f"id must be an integer or numeric string, got {value!r}")


EventId = Annotated[str, BeforeValidator(coerce_id)]


class Heartbeat(BaseModel):
    """Keep-alive event; only advances the cursor."""
    id: EventId

    @property
    def event_id(self) -> str:
        return self.id


class Recipient(BaseModel):
    """One entry of a private message's display_recipient list."""
    email: str
    full_name: Optional[str] = None
    id: Optional[int] = None


class OutboundMessage(BaseModel):
    type: str
    content: str
    subject: str = ""
    stream: str = ""
    recipients: list[str] = Field(default_factory=list)

    @classmethod
    def to_stream(cls, stream: str, subject: str, content: str) -> "OutboundMessage":
        return cls(type=MessageType.STREAM, stream=stream, subject=subject, content=content)

    @classmethod
    def to_users(cls, recipients: list[str], content: str) -> "OutboundMessage":
        return cls(type=MessageType.PRIVATE, recipients=list(recipients), content=content)


class Message(BaseModel):
    """A chat message.

    ``id`` is the platform's message id, ``event_id`` the id of the queue event
    that carried it (the polling cursor). Exactly one of ``stream`` and
    ``recipients`` is populated, chosen by ``type``.
    """
    id: EventId
    event_id: EventId
    type: str
    stream: str = ""
    recipients: list[str] = Field(default_factory=list)
    subject: str = ""
    content: str = ""
    sender_email: str = ""
    sender_full_name: str = ""

    @property
    def author(self) -> str:
        return self.sender_email

    @property
    def is_private(self) -> bool:
        return self.type == MessageType.PRIVATE

    def reply(self, content: str) -> OutboundMessage:
        """Build a reply addressed like this message, with new content."""
        if self.type == MessageType.PRIVATE:
            return OutboundMessage(
                type=self.type, subject=self.subject, content=content, recipients=list(self.recipients),
            )
        if self.type == MessageType.STREAM:
            return OutboundMessage(type=self.type, subject=self.subject, content=content, stream=self.stream)
        raise ValidationError(f"unknown message type: {self.type}")


Event = Union[Message, Heartbeat]
