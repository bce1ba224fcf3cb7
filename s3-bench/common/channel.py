"""
Bounded, closable async channel used between feeder, workers and stats consumer.
"""

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

# Shutdown signal travelling through the queue after close()
_CLOSED = object()


class ChannelClosed(Exception):
    """Raised when sending on a closed channel, or receiving from a drained one."""


class Channel:
    """asyncio.Queue with close semantics.

    ``send`` blocks while the channel is full, which is what applies
    back-pressure to the producer. After ``close`` the receivers drain the
    remaining items and then every ``receive`` raises ``ChannelClosed``.
    Only the producing side closes, and nothing may be sent afterwards.
    """

    def __init__(self, maxsize: int, name: str = "channel"):
        if maxsize <= 0:
            raise ValueError(f"Channel capacity must be positive, got {maxsize}")
        self.name = name
        self.maxsize = maxsize
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.sent = 0
        self.peak_size = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        """Number of buffered items."""
        return self._queue.qsize()

    async def send(self, item: Any) -> None:
        """Put one item, waiting while the channel is full."""
        if self._closed:
            raise ChannelClosed(f"send on closed {self.name}")
        await self._queue.put(item)
        self.sent += 1
        self.peak_size = max(self.peak_size, self._queue.qsize())

    async def receive(self) -> Any:
        """Take one item, waiting until one is available.

        Raises:
            ChannelClosed: The channel was closed and everything was drained
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Hand the marker on so every other receiver wakes up too
            self._queue.put_nowait(_CLOSED)
            raise ChannelClosed(f"{self.name} closed")
        return item

    async def close(self) -> None:
        """Mark the end of the stream, waiting for room if the channel is full."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)
        logger.debug(f"{self.name} closed after {self.sent} items")

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        try:
            return await self.receive()
        except ChannelClosed:
            raise StopAsyncIteration
