"""
Event queue models.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tiny_robots.models.events import EventId


class QueueSession(BaseModel):
    """A registered queue and the id of the last consumed event.

    Frozen: the poll loop replaces the value on every cursor move or
    re-registration, so queue id and cursor always change together.
    """
    model_config = ConfigDict(frozen=True)

    queue_id: str
    last_event_id: EventId

    def advance(self, event_id: str) -> "QueueSession":
        return QueueSession(queue_id=self.queue_id, last_event_id=event_id)


class RegisterResponse(BaseModel):
    result: str
    msg: str = ""
    queue_id: str
    last_event_id: EventId


class EventsResponse(BaseModel):
    result: str
    msg: str = ""
    events: list[Any] = Field(default_factory=list)
