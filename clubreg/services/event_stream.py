"""
Push-based session-change stream.

The auth backend publishes every sign-in, token refresh and sign-out here.
Each subscriber owns an asyncio.Queue drained by a single pump task, so
events reach a subscriber in the order they were published. Every callback
runs as its own task: a slow handler for one event does not hold back the
delivery of the next one.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from clubreg.session.types import AuthSession

logger = logging.getLogger(__name__)

SessionCallback = Callable[[Optional[AuthSession]], Awaitable[None]]


class Subscription:
    """A cancellable subscription; call `unsubscribe()` on shutdown."""

    def __init__(self, stream: "SessionEventStream", callback: SessionCallback) -> None:
        self._stream   = stream
        self._callback = callback
        self._queue: asyncio.Queue[Optional[AuthSession]] = asyncio.Queue()
        self._pump: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        self._pump = asyncio.get_running_loop().create_task(self._run())

    def push(self, session: Optional[AuthSession]) -> None:
        if self._active:
            self._queue.put_nowait(session)

    def unsubscribe(self) -> None:
        """Stop delivery. Callbacks already dispatched are left to finish."""
        if not self._active:
            return
        self._active = False
        self._stream._remove(self)
        if self._pump is not None:
            self._pump.cancel()
            self._pump = None

    async def drain(self) -> None:
        """Wait until every queued event has been dispatched and handled."""
        await self._queue.join()
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _run(self) -> None:
        while True:
            session = await self._queue.get()
            task = asyncio.create_task(self._deliver(session))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _deliver(self, session: Optional[AuthSession]) -> None:
        try:
            await self._callback(session)
        except Exception:
            logger.exception("Session-change subscriber failed")
        finally:
            self._queue.task_done()


class SessionEventStream:
    def __init__(self) -> None:
        self._subscribers: List[Subscription] = []

    def subscribe(self, callback: SessionCallback) -> Subscription:
        sub = Subscription(self, callback)
        self._subscribers.append(sub)
        sub.start()
        return sub

    def publish(self, session: Optional[AuthSession]) -> None:
        for sub in list(self._subscribers):
            sub.push(session)

    async def drain(self) -> None:
        """Wait until every subscriber has handled everything published so far."""
        for sub in list(self._subscribers):
            await sub.drain()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)
