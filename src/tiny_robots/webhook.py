"""Pipeline status webhook -- POST /pipeline-status.

Receives GitLab pipeline events and forwards finished builds as stream
messages. ``pending`` and ``running`` updates are dropped.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from aiohttp import web

from tiny_robots.errors import TinyRobotsError
from tiny_robots.models.events import OutboundMessage

logger = logging.getLogger(__name__)

SUPPRESSED_STATUSES = frozenset({"pending", "running"})


class MessageSender(Protocol):
    async def send(self, message: OutboundMessage) -> Any: ...


def find_key(value: Any, *keys: str) -> Any:
    """Walk nested mappings; raises KeyError when a level is missing."""
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            raise KeyError(".".join(keys))
        value = value[key]
    return value


def render_pipeline_status(payload: dict[str, Any]) -> str:
    status = find_key(payload, "object_attributes", "status")
    emoji = "🎉" if status == "success" else "⛈"
    commit_message = str(find_key(payload, "commit", "message"))
    first_line = commit_message.split("\n", 1)[0]
    return (
        f"{emoji} Build for {find_key(payload, 'project', 'name')} "
        f'("{first_line}", {find_key(payload, "object_attributes", "ref")}) '
        f"ran with status {status} "
        f"(took {find_key(payload, 'object_attributes', 'duration')}s)"
    )


class PipelineWebhook:
    """Forwards CI pipeline status notifications to a chat stream."""

    def __init__(self, sender: MessageSender, stream: str = "platform") -> None:
        self._sender = sender
        self._stream = stream

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/pipeline-status", self.pipeline_status)

    async def pipeline_status(self, req: web.Request) -> web.Response:
        body = await req.text()
        logger.debug("Pipeline status payload: %s", body)
        try:
            payload = json.loads(body)
        except ValueError as e:
            logger.warning("Parsing pipeline status failed: %s", e)
            return web.json_response({"status": "error", "message": "invalid JSON"}, status=400)

        try:
            status = find_key(payload, "object_attributes", "status")
            if not isinstance(status, str):
                logger.warning("Pipeline status is not a string: %r", status)
                return web.json_response({"status": "error", "message": "invalid status"}, status=400)
            if status in SUPPRESSED_STATUSES:
                return web.Response(status=204)
            content = render_pipeline_status(payload)
            subject = str(find_key(payload, "project", "name"))
        except KeyError as e:
            logger.warning("Pipeline status without %s", e)
            return web.json_response({"status": "error", "message": f"missing field {e}"}, status=400)

        try:
            await self._sender.send(OutboundMessage.to_stream(self._stream, subject, content))
        except TinyRobotsError as e:
            logger.error("Forwarding pipeline status failed: %s", e)
            return web.json_response({"status": "error", "message": str(e)}, status=502)
        return web.json_response({"status": "sent"})


def create_app(sender: MessageSender, stream: str = "platform") -> web.Application:
    app = web.Application()
    PipelineWebhook(sender, stream).register(app.router)
    return app
