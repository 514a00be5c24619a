"""
Progress channel and cancellation.

The orchestrator pushes events into a ProgressChannel; the transport
(SSE, WebSocket) drains it in order. Cancellation flows the other way
through the channel's CancellationToken.
"""
import asyncio
from typing import AsyncIterator, List, Optional

from litsearch.core.logging import get_search_logger
from litsearch.schemas.events import TERMINAL_EVENT_TYPES, SearchEvent

_CLOSED = object()


class CancellationToken:
    """One-shot cancel flag that coroutines can also await."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


class ProgressChannel:
    """
    Ordered, single-consumer event stream for one search.

    Events emitted after a terminal event or after close() are dropped.
    """

    def __init__(self, search_id: str, token: Optional[CancellationToken] = None):
        self.search_id = search_id
        self.token = token or CancellationToken()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._emitted: List[str] = []
        self.logger = get_search_logger(__name__, search_id)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def emitted_types(self) -> List[str]:
        return list(self._emitted)

    def emit(self, event: SearchEvent) -> None:
        if self._closed:
            self.logger.warning(f"dropped {event.type} after channel close")
            return
        self._queue.put_nowait(event)
        self._emitted.append(event.type)
        if event.type in TERMINAL_EVENT_TYPES:
            self.close()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def cancel(self) -> None:
        self.logger.info("cancellation requested")
        self.token.cancel()

    async def __aiter__(self) -> AsyncIterator[SearchEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
