"""
Envelope parsing and outbound form construction.
"""

import json
from typing import Any, Optional

from tiny_robots.errors import APIError, TransportError
from tiny_robots.models.events import MessageType, OutboundMessage

SUCCESS = "success"


def unwrap(operation: str, body: Any, status: Optional[int] = None) -> dict[str, Any]:
    """Check a response envelope: { "result": "success", "msg": "", ... }"""
    if not isinstance(body, dict):
        raise TransportError(f"{operation}: expected a JSON object, got {type(body).__name__}")
    if body.get("result") != SUCCESS:
        details: dict[str, Any] = {"result": body.get("result")}
        if status is not None:
            details["status"] = status
        if body.get("code"):
            details["code"] = body["code"]
        raise APIError(operation, str(body.get("msg") or "unknown error"), details)
    return body


def build_message_params(message: OutboundMessage) -> dict[str, str]:
    """Form fields for ``POST messages``.

    Private messages address a JSON array of emails, stream messages a bare
    stream name.
    """
    if message.type == MessageType.PRIVATE:
        to = json.dumps(list(message.recipients))
    else:
        to = message.stream
    return {
        "type": message.type,
        "content": message.content,
        "subject": message.subject,
        "to": to,
    }
