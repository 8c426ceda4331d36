"""
Event decoder: raw queue events to typed Message / Heartbeat values.

The message ``display_recipient`` field is either a stream name (string) or a
list of recipient records (private message). It is resolved here and nowhere
else.

Rocket.Chat room messages arrive as DDP ``changed`` frames and are decoded by
decode_room_message().
"""

from typing import Any, Optional

import pydantic

from tiny_robots.errors import DecodeError
from tiny_robots.models.events import Event, EventType, Heartbeat, Message, MessageType, Recipient, coerce_id
from tiny_robots.models.rocket import ROOM_MESSAGES_STREAM, RoomMessage

MESSAGE_FIELDS = ("id", "subject", "content", "sender_email", "sender_full_name")


def _event_id(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    try:
        return coerce_id(raw)
    except ValueError:
        return None


def decode_event(event_type: str, payload: dict[str, Any]) -> Event:
    """Decode one raw event record.

    ``payload`` is the whole event object, e.g.
    ``{"type": "message", "id": 12, "message": {...}}``.
    """
    event_id = _event_id(payload.get("id"))

    if event_type == EventType.HEARTBEAT:
        if event_id is None:
            raise DecodeError(f"heartbeat without a valid id: {payload.get('id')!r}", event_type)
        return Heartbeat(id=event_id)

    if event_type == EventType.MESSAGE:
        return _decode_message(payload, event_id)

    raise DecodeError(f"unknown event type: {event_type}", event_type, event_id)


def _decode_message(payload: dict[str, Any], event_id: Optional[str]) -> Message:
    if event_id is None:
        raise DecodeError(f"message event without a valid id: {payload.get('id')!r}", EventType.MESSAGE)
    raw = payload.get("message")
    if not isinstance(raw, dict):
        raise DecodeError("message event without a message object", EventType.MESSAGE, event_id)

    recipient = raw.get("display_recipient")
    stream = ""
    recipients: list[str] = []
    if isinstance(recipient, str):
        message_type = MessageType.STREAM
        stream = recipient
    elif isinstance(recipient, list):
        message_type = MessageType.PRIVATE
        for record in recipient:
            if not isinstance(record, dict):
                raise DecodeError(
                    f"unknown recipient record: {type(record).__name__}", EventType.MESSAGE, event_id,
                )
            try:
                recipients.append(Recipient.model_validate(record).email)
            except pydantic.ValidationError as e:
                raise DecodeError(f"invalid recipient record: {e}", EventType.MESSAGE, event_id)
    else:
        raise DecodeError("unknown recipient shape", EventType.MESSAGE, event_id)

    fields = {k: raw[k] for k in MESSAGE_FIELDS if raw.get(k) is not None}
    fields.setdefault("id", event_id)
    try:
        return Message(
            **fields,
            event_id=event_id,
            type=message_type,
            stream=stream,
            recipients=recipients,
        )
    except pydantic.ValidationError as e:
        raise DecodeError(f"invalid message: {e}", EventType.MESSAGE, event_id)


def decode_room_message(frame: dict[str, Any]) -> RoomMessage:
    """Decode a ``changed`` frame of the room messages stream.

    The message record is ``fields.args[0]``; its sender is ``u.username``.
    """
    fields = frame.get("fields")
    args = fields.get("args") if isinstance(fields, dict) else None
    if not isinstance(args, list) or not args or not isinstance(args[0], dict):
        raise DecodeError("room message frame without a message record", ROOM_MESSAGES_STREAM)
    raw = args[0]
    message_id = raw.get("_id") if isinstance(raw.get("_id"), str) else None
    user = raw.get("u")
    if not isinstance(user, dict):
        raise DecodeError("room message without a sender", ROOM_MESSAGES_STREAM, message_id)
    try:
        return RoomMessage(
            id=message_id or "",
            room_id=raw.get("rid"),
            content=raw.get("msg"),
            author=user.get("username"),
        )
    except pydantic.ValidationError as e:
        raise DecodeError(f"invalid room message: {e}", ROOM_MESSAGES_STREAM, message_id)
