"""
AsyncRocketClient: bot client for Rocket.Chat over the DDP websocket API.

Same surface as AsyncChatClient (send, reply, replyf, on_each_message) so the
command router runs on either backend. The bot listens to a single room.
"""

import inspect
import logging
import secrets
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

import aiohttp

from tiny_robots.auth import password_digest, read_key_file
from tiny_robots.decoder import decode_room_message
from tiny_robots.errors import APIError, ConfigError, DecodeError, TinyRobotsError, ValidationError
from tiny_robots.models.rocket import ROOM_MESSAGES_STREAM, RoomMessage
from tiny_robots.transport.ddp import DDPConnection

logger = logging.getLogger(__name__)

RoomMessageHandler = Callable[[RoomMessage], Union[None, Awaitable[Any]]]


def _error_text(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error.get("reason") or error.get("error") or error)
    return str(error)


class AsyncRocketClient:
    def __init__(
        self,
        url: str,
        username: str,
        room_id: str,
        password: Optional[str] = None,
        digest: Optional[str] = None,
        key_file: Optional[Union[str, Path]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        debug: bool = False,
    ):
        """Credentials come from *password*, a precomputed SHA-256 *digest*, or
        a *key_file* holding that digest, in that order."""
        if password is not None:
            digest = password_digest(password)
        elif digest is None:
            if key_file is None:
                raise ConfigError("password, digest or key_file required")
            digest = read_key_file(key_file)
        if not room_id:
            raise ConfigError("room_id required")

        self._username = username
        self._room_id = room_id
        self._digest = digest
        self.ddp = DDPConnection(url, session=session, debug=debug)
        self._login_id: Optional[str] = None
        self._sub_id: Optional[str] = None
        self._stopped = False

    @property
    def username(self) -> str:
        return self._username

    @property
    def room_id(self) -> str:
        return self._room_id

    @property
    def running(self) -> bool:
        return self.ddp.connected and not self._stopped

    async def connect(self) -> None:
        """Connect, log in and subscribe to the room's messages.

        Login and subscription results arrive later on the socket; failures
        surface from on_each_message() as APIError.
        """
        await self.ddp.connect()
        self._login_id = await self.ddp.call("login", {
            "user": {"username": self._username},
            "password": {"digest": self._digest, "algorithm": "sha-256"},
        })
        self._sub_id = await self.ddp.subscribe(ROOM_MESSAGES_STREAM, self._room_id, False)
        logger.info("Subscribed to room %s as %s", self._room_id, self._username)

    async def send(self, message: RoomMessage) -> str:
        """Send a message, logging the error before re-raising it. Returns the new message id."""
        if not message.room_id:
            raise ValidationError("room message without a room id")
        message_id = secrets.token_hex(10)
        try:
            await self.ddp.call("sendMessage", {"_id": message_id, "rid": message.room_id, "msg": message.content})
        except TinyRobotsError as e:
            logger.error("Sending message failed: %s", e)
            raise
        return message_id

    async def reply(self, message: RoomMessage, content: str) -> str:
        return await self.send(message.reply(content))

    async def replyf(self, message: RoomMessage, fmt: str, *args: Any) -> str:
        """Reply with ``fmt % args``."""
        return await self.reply(message, fmt % args if args else fmt)

    async def on_each_message(self, handler: RoomMessageHandler) -> None:
        """Call *handler* for each room message until stop() or the socket closes.

        Connects first if needed. stop() takes effect after the current frame;
        close() ends the loop at once.
        """
        if not self.ddp.connected:
            await self.connect()
        self._stopped = False
        async for frame in self.ddp.frames():
            self._handle_frame_errors(frame)
            if frame["msg"] == "changed" and frame.get("collection") == ROOM_MESSAGES_STREAM:
                try:
                    message = decode_room_message(frame)
                except DecodeError as e:
                    logger.warning("Skipping room message: %s", e.message)
                else:
                    await self._invoke(handler, message)
            elif frame["msg"] not in ("result", "nosub", "ready", "updated", "added", "connected"):
                logger.debug("Unhandled frame: %s", frame)
            if self._stopped:
                break

    def _handle_frame_errors(self, frame: dict[str, Any]) -> None:
        kind = frame["msg"]
        if kind == "result" and "error" in frame:
            text = _error_text(frame["error"])
            if frame.get("id") == self._login_id:
                raise APIError("login", text, {"error": frame["error"]})
            logger.error("Method call %s failed: %s", frame.get("id"), text)
        elif kind == "nosub" and frame.get("id") == self._sub_id:
            raise APIError("subscribe", _error_text(frame.get("error", "subscription rejected")))
        elif kind == "failed":
            raise APIError("connect", f"server does not support DDP version {frame.get('version')}")

    async def _invoke(self, handler: RoomMessageHandler, message: RoomMessage) -> None:
        try:
            result = handler(message)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Message handler failed for message %s", message.id)

    def stop(self) -> None:
        self._stopped = True

    async def close(self) -> None:
        self.stop()
        await self.ddp.close()

    async def __aenter__(self) -> "AsyncRocketClient":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.close()
