"""
Status stream execution helper.

Turns the session's SessionUpdatedEvents into an async iterator of status
strings for display layers.
"""

import asyncio
from typing import AsyncIterator, Optional

from .events import Dependencies, EventBus, SessionUpdatedEvent


class StatusStream:
    """Async iterator over status lines published on an EventBus.

    Consecutive identical lines are collapsed. The stream ends after
    ``close()``; lines queued before the close are still delivered.

    Usage:
        stream = StatusStream(session.event_bus)
        async for status in stream:
            print(status)
    """

    def __init__(self, event_bus: EventBus, include_empty: bool = False) -> None:
        """
        Subscribe to the event bus.

        Args:
            event_bus: Bus the session publishes on.
            include_empty: Whether empty status lines are delivered.
        """
        self.event_bus = event_bus
        self.include_empty = include_empty
        self._queue: asyncio.Queue = asyncio.Queue()
        self._last: Optional[str] = None
        self._closed = False
        self.event_bus.subscribe(SessionUpdatedEvent, self._on_update)

    async def _on_update(self, event: SessionUpdatedEvent, deps: Dependencies) -> None:
        status = event.snapshot.status
        if self._closed or status == self._last:
            return
        if not status and not self.include_empty:
            return
        self._last = status
        await self._queue.put(status)

    def close(self) -> None:
        """Stop listening and end the iteration."""
        if self._closed:
            return
        self._closed = True
        self.event_bus.unsubscribe(SessionUpdatedEvent, self._on_update)
        self._queue.put_nowait(None)  # Sentinel to indicate completion

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        while True:
            status = await self._queue.get()
            if status is None:
                break
            yield status
