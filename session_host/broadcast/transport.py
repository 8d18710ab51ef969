"""Subscriber transports for the broadcast hub."""

import asyncio
from typing import AsyncIterator, Callable, Protocol

CONNECTED_FRAME = ": connected\n\n"
KEEPALIVE_FRAME = ": ping\n\n"


class TransportClosed(Exception):
    """Raised when writing to a transport that has been closed."""


class ISubscriberTransport(Protocol):
    """A live sink for serialized broadcast frames."""

    def send(self, frame: str) -> None:
        """Write one frame without blocking; raise if the sink cannot accept it."""
        ...

    def on_close(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once when the transport closes."""
        ...

    def close(self) -> None:
        """Close the transport."""
        ...


class QueueTransport:
    """Bounded asyncio queue between the hub and one streaming response.

    A consumer that falls more than max_pending frames behind makes send()
    raise asyncio.QueueFull, which gets it evicted.
    """

    def __init__(self, max_pending: int = 1000, keepalive: float | None = 15.0):
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max_pending)
        self._keepalive = keepalive
        self._closed = False
        self._close_callbacks: list[Callable[[], None]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, frame: str) -> None:
        if self._closed:
            raise TransportClosed("transport is closed")
        self._queue.put_nowait(frame)

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_callbacks.append(callback)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        # Pending frames are dropped; the sentinel ends frames()
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

        for callback in self._close_callbacks:
            callback()

    async def frames(self) -> AsyncIterator[str]:
        """Yield frames in delivery order until the transport closes."""
        while True:
            try:
                if self._keepalive:
                    frame = await asyncio.wait_for(self._queue.get(), self._keepalive)
                else:
                    frame = await self._queue.get()
            except asyncio.TimeoutError:
                yield KEEPALIVE_FRAME
                continue

            if frame is None:
                return
            yield frame
