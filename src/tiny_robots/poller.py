"""
Event poller: long-polls the event queue and hands events to a handler.

Cycle:
- sleep a fixed interval (skipped before the first fetch, cut short by stop())
- fetch the next batch for the current queue session
- for each event in order: advance the cursor, then dispatch the handler
- bad queue id: register a new queue and carry on with it
- any other failure: log it and retry on the next cycle
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from tiny_robots.errors import APIError, DecodeError, TransportError
from tiny_robots.models.events import Event
from tiny_robots.models.queue import QueueSession
from tiny_robots.queues import DEFAULT_EVENT_TYPES, QueueAPI, is_bad_queue

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 0.5

EventHandler = Callable[[Event], Union[None, Awaitable[Any]]]


class DispatchMode:
    SYNC = "sync"  # handler awaited inline; a slow handler delays the next poll
    TASK = "task"  # handler scheduled as a task; no ordering across handlers

    ALL = (SYNC, TASK)


class EventPoller:
    def __init__(
        self,
        queues: QueueAPI,
        handler: EventHandler,
        event_types: Iterable[str] = DEFAULT_EVENT_TYPES,
        interval: float = DEFAULT_INTERVAL_S,
        dispatch: str = DispatchMode.SYNC,
    ):
        if dispatch not in DispatchMode.ALL:
            raise ValueError(f"dispatch must be one of {DispatchMode.ALL}, got {dispatch!r}")
        self._queues = queues
        self._handler = handler
        self._event_types = tuple(event_types)
        self._interval = interval
        self._dispatch_mode = dispatch
        self._session: Optional[QueueSession] = None
        self._stopped = asyncio.Event()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def session(self) -> Optional[QueueSession]:
        return self._session

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    async def start(self) -> QueueSession:
        """Register the initial queue. Failures propagate to the caller."""
        self._session = await self._queues.register(self._event_types)
        return self._session

    def stop(self) -> None:
        """Ask run() to return before its next cycle."""
        self._stopped.set()

    async def run(self) -> None:
        """Poll until stop() is called, registering first if needed."""
        if self._session is None:
            await self.start()
        first = True
        while not self._stopped.is_set():
            if not first:
                await self._sleep()
                if self._stopped.is_set():
                    break
            first = False
            await self.poll_once()
        await self.wait_handlers()

    async def poll_once(self) -> int:
        """Run a single fetch cycle. Returns the number of events dispatched."""
        if self._session is None:
            raise RuntimeError("EventPoller.start() must be called before polling")
        try:
            events = await self._queues.fetch(self._session)
        except (TransportError, APIError) as e:
            if is_bad_queue(e):
                logger.warning("Event queue %s is gone (%s), registering a new one", self._session.queue_id, e)
                await self._reregister()
            else:
                logger.warning("Getting events failed: %s", e)
            return 0

        dispatched = 0
        for event in events:
            if event.event_id is not None:
                self._session = self._session.advance(event.event_id)
            if isinstance(event, DecodeError):
                logger.warning("Skipping event %s: %s", event.event_id, event.message)
                continue
            await self._dispatch(event)
            dispatched += 1
        return dispatched

    async def wait_handlers(self) -> None:
        """Wait for handlers scheduled in task dispatch mode."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _reregister(self) -> None:
        try:
            session = await self._queues.register(self._event_types)
        except (TransportError, APIError) as e:
            # Keep the stale session; the next fetch fails again and retries.
            logger.error("Registering event queue failed: %s", e)
            return
        self._session = session

    async def _dispatch(self, event: Event) -> None:
        if self._dispatch_mode == DispatchMode.TASK:
            task = asyncio.get_running_loop().create_task(self._invoke(event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            await self._invoke(event)

    async def _invoke(self, event: Event) -> None:
        try:
            result = self._handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Event handler failed for event %s", event.event_id)

    async def _sleep(self) -> None:
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            pass
