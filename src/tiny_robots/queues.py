"""
Event queue REST API: register a queue, fetch the next batch of events.
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, Optional, Union

import pydantic

from tiny_robots.decoder import decode_event
from tiny_robots.errors import APIError, DecodeError, TransportError
from tiny_robots.models.events import Event, EventType
from tiny_robots.models.queue import EventsResponse, QueueSession, RegisterResponse
from tiny_robots.transport.http import HttpClient

logger = logging.getLogger(__name__)

BAD_QUEUE_PREFIX = "Bad event queue id:"
DEFAULT_EVENT_TYPES = (EventType.MESSAGE,)
# The server holds a long-poll open for up to about a minute before answering
# with a heartbeat.
DEFAULT_POLL_TIMEOUT_S = 90.0


def is_bad_queue(err: Exception) -> bool:
    """True when the platform no longer knows the queue id."""
    return isinstance(err, APIError) and err.message.startswith(BAD_QUEUE_PREFIX)


class QueueAPI:
    def __init__(self, http: HttpClient, poll_timeout: float = DEFAULT_POLL_TIMEOUT_S):
        self._http = http
        self._poll_timeout = poll_timeout

    async def register(self, event_types: Iterable[str] = DEFAULT_EVENT_TYPES) -> QueueSession:
        """Register an event queue and return its id with the starting cursor."""
        types = list(event_types)
        params = {"event_types": json.dumps(types)} if types else {}
        body = await self._http.post("register", params)
        try:
            resp = RegisterResponse.model_validate(body)
        except pydantic.ValidationError as e:
            raise TransportError(f"register: malformed response: {e}")
        logger.info("Registered event queue %s at event %s", resp.queue_id, resp.last_event_id)
        return QueueSession(queue_id=resp.queue_id, last_event_id=resp.last_event_id)

    async def fetch(self, session: QueueSession) -> list[Union[Event, DecodeError]]:
        """Fetch events after the session's cursor, in platform order.

        Events that cannot be decoded are returned in place as DecodeError
        values so the caller can still advance past their ids.
        """
        body = await self._http.get(
            "events",
            {"queue_id": session.queue_id, "last_event_id": session.last_event_id},
            timeout=self._poll_timeout,
        )
        try:
            resp = EventsResponse.model_validate(body)
        except pydantic.ValidationError as e:
            raise TransportError(f"events: malformed response: {e}")

        events: list[Union[Event, DecodeError]] = []
        for raw in resp.events:
            if not isinstance(raw, dict):
                events.append(DecodeError(f"malformed event record: {type(raw).__name__}"))
                continue
            event_type: Optional[str] = raw.get("type")
            try:
                events.append(decode_event(str(event_type), raw))
            except DecodeError as e:
                events.append(e)
        return events
