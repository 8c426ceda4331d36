"""
DDP websocket connection for the Rocket.Chat realtime API.

Every frame is a JSON text message keyed by ``msg``. The server sends
``ping`` frames and drops clients that do not answer with ``pong``.
"""

import itertools
import json
import logging
from typing import Any, AsyncIterator, Optional

import aiohttp

from tiny_robots.errors import TransportError

logger = logging.getLogger(__name__)

DDP_VERSION = "1"


class DDPConnection:
    def __init__(
        self,
        url: str,
        session: Optional[aiohttp.ClientSession] = None,
        debug: bool = False,
    ):
        self._url = url
        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._ids = itertools.count(1)
        self._debug = debug

    @property
    def url(self) -> str:
        return self._url

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        """Open the websocket and send the DDP ``connect`` handshake."""
        if self.connected:
            return
        if self._session is None:
            self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(self._url)
        except aiohttp.ClientError as e:
            raise TransportError(f"connecting to {self._url}: {e}") from e
        await self.send({"msg": "connect", "version": DDP_VERSION, "support": [DDP_VERSION]})

    async def send(self, frame: dict[str, Any]) -> None:
        if self._ws is None or self._ws.closed:
            raise TransportError("websocket is not connected")
        if self._debug:
            logger.debug("-> %s", frame)
        try:
            await self._ws.send_json(frame)
        except (aiohttp.ClientError, ConnectionError) as e:
            raise TransportError(f"writing frame: {e}") from e

    async def call(self, method: str, *params: Any) -> str:
        """Send a method call and return its id. Results arrive as ``result`` frames."""
        call_id = str(next(self._ids))
        await self.send({"msg": "method", "method": method, "id": call_id, "params": list(params)})
        return call_id

    async def subscribe(self, name: str, *params: Any) -> str:
        sub_id = str(next(self._ids))
        await self.send({"msg": "sub", "id": sub_id, "name": name, "params": list(params)})
        return sub_id

    async def frames(self) -> AsyncIterator[dict[str, Any]]:
        """Yield decoded frames until the socket closes.

        ``ping`` is answered here and not yielded. Non-text frames, invalid
        JSON and frames without a ``msg`` field are logged and skipped.
        """
        if self._ws is None:
            raise TransportError("websocket is not connected")
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                if self._debug:
                    logger.debug("<- %s", msg.data)
                try:
                    frame = json.loads(msg.data)
                except ValueError:
                    logger.warning("Skipping invalid JSON frame: %s", msg.data[:200])
                    continue
                if not isinstance(frame, dict) or not isinstance(frame.get("msg"), str):
                    logger.debug("Skipping frame without msg: %s", frame)
                    continue
                if frame["msg"] == "ping":
                    pong: dict[str, Any] = {"msg": "pong"}
                    if "id" in frame:
                        pong["id"] = frame["id"]
                    await self.send(pong)
                    continue
                yield frame
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise TransportError(f"websocket error: {self._ws.exception()}")
            else:
                logger.debug("Skipping websocket frame of type %s", msg.type)

    async def close(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
