"""
AsyncChatClient / ChatClient: bot-facing clients.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

import httpx

from tiny_robots.auth import read_key_file
from tiny_robots.errors import ConfigError, TinyRobotsError
from tiny_robots.messages import MessagesAPI
from tiny_robots.models.events import Event, Message, OutboundMessage
from tiny_robots.poller import DEFAULT_INTERVAL_S, DispatchMode, EventHandler, EventPoller
from tiny_robots.queues import DEFAULT_EVENT_TYPES, DEFAULT_POLL_TIMEOUT_S, QueueAPI
from tiny_robots.transport.http import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT_S, HttpClient

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Message], Union[None, Awaitable[Any]]]


class AsyncChatClient:
    """Async chat platform client (primary)."""

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        username: str = "",
        secret: Optional[str] = None,
        key_file: Optional[Union[str, Path]] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT_S,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if secret is None:
            if key_file is None:
                raise ConfigError("secret or key_file required")
            secret = read_key_file(key_file)

        self.http = HttpClient(
            endpoint=endpoint, username=username, secret=secret,
            timeout=timeout, debug=debug, transport=transport,
        )
        self.queues = QueueAPI(self.http, poll_timeout=poll_timeout)
        self.messages = MessagesAPI(self.http)
        self._poller: Optional[EventPoller] = None

    @property
    def username(self) -> str:
        return self.http.username

    @property
    def running(self) -> bool:
        return self._poller is not None and not self._poller.stopped

    async def send(self, message: OutboundMessage) -> Optional[int]:
        """Send a message, logging the error before re-raising it."""
        try:
            return await self.messages.send(message)
        except TinyRobotsError as e:
            logger.error("Sending message failed: %s", e)
            raise

    async def reply(self, message: Message, content: str) -> Optional[int]:
        return await self.send(message.reply(content))

    async def replyf(self, message: Message, fmt: str, *args: Any) -> Optional[int]:
        """Reply with ``fmt % args``."""
        return await self.reply(message, fmt % args if args else fmt)

    def poller(
        self,
        handler: EventHandler,
        event_types: Iterable[str] = DEFAULT_EVENT_TYPES,
        interval: float = DEFAULT_INTERVAL_S,
        dispatch: str = DispatchMode.SYNC,
    ) -> EventPoller:
        return EventPoller(self.queues, handler, event_types=event_types, interval=interval, dispatch=dispatch)

    async def on_each_event(self, handler: EventHandler, **kwargs: Any) -> None:
        """Poll the event queue and call *handler* for every event until stop()."""
        self._poller = self.poller(handler, **kwargs)
        await self._poller.run()

    async def on_each_message(self, handler: MessageHandler, **kwargs: Any) -> None:
        """Like on_each_event(), but only messages reach *handler*."""
        def _handler(event: Event) -> Union[None, Awaitable[Any]]:
            if isinstance(event, Message):
                return handler(event)
            return None

        await self.on_each_event(_handler, **kwargs)

    def stop(self) -> None:
        if self._poller is not None:
            self._poller.stop()

    async def close(self) -> None:
        self.stop()
        await self.http.close()

    async def __aenter__(self) -> "AsyncChatClient":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.close()


class ChatClient:
    """Sync wrapper around AsyncChatClient. Runs the event loop internally."""

    def __init__(self, **kwargs: Any):
        self._async = AsyncChatClient(**kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def aio(self) -> AsyncChatClient:
        return self._async

    @property
    def queues(self) -> QueueAPI:
        return self._async.queues

    @property
    def messages(self) -> MessagesAPI:
        return self._async.messages

    def send(self, message: OutboundMessage) -> Optional[int]:
        return self._run(self._async.send(message))

    def reply(self, message: Message, content: str) -> Optional[int]:
        return self._run(self._async.reply(message, content))

    def replyf(self, message: Message, fmt: str, *args: Any) -> Optional[int]:
        return self._run(self._async.replyf(message, fmt, *args))

    def on_each_event(self, handler: EventHandler, **kwargs: Any) -> None:
        """Block, polling events until stop() is called from a handler.

        Handlers run on the wrapper's own event loop, so they must reply
        through ``aio`` (returning the coroutine) rather than the blocking
        methods.
        """
        self._run(self._async.on_each_event(handler, **kwargs))

    def on_each_message(self, handler: MessageHandler, **kwargs: Any) -> None:
        self._run(self._async.on_each_message(handler, **kwargs))

    def stop(self) -> None:
        self._async.stop()

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
