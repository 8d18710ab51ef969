"""Broadcast hub fanning events out to live subscribers."""

import threading
from typing import Protocol

from ..logging_config import get_logger
from ..models import BroadcastEvent
from .transport import CONNECTED_FRAME, ISubscriberTransport

logger = get_logger(__name__)


class IBroadcastHub(Protocol):
    """Fanout of BroadcastEvents to every connected subscriber."""

    def subscribe(self, subscriber_id: str, transport: ISubscriberTransport) -> None:
        """Register a sink and send it the connection marker."""
        ...

    def unsubscribe(self, subscriber_id: str) -> None:
        """Unregister a sink; unknown ids are ignored."""
        ...

    def publish(self, event: BroadcastEvent) -> None:
        """Write event to all sinks, evicting any whose write fails."""
        ...

    def unicast(self, subscriber_id: str, event: BroadcastEvent) -> None:
        """Write event to one sink, evicting it if the write fails."""
        ...

    def count(self) -> int:
        """Number of registered sinks."""
        ...


class BroadcastHub:
    """Best-effort, non-blocking fanout.

    Transports must not block in send(). A failed write evicts that
    subscriber permanently; the publisher and other subscribers are never
    affected.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, ISubscriberTransport] = {}

    def subscribe(self, subscriber_id: str, transport: ISubscriberTransport) -> None:
        """Register a sink and send it the connection marker."""
        with self._lock:
            self._subscribers[subscriber_id] = transport
        transport.on_close(lambda: self._handle_closed(subscriber_id, transport))
        logger.info("Subscriber connected: %s", subscriber_id)

        self._send(subscriber_id, transport, CONNECTED_FRAME)

    def unsubscribe(self, subscriber_id: str) -> None:
        """Unregister a sink and close its transport; unknown ids are ignored."""
        with self._lock:
            transport = self._subscribers.pop(subscriber_id, None)
        if transport is None:
            return
        logger.info("Subscriber disconnected: %s", subscriber_id)
        transport.close()

    def publish(self, event: BroadcastEvent) -> None:
        """Write event to all sinks, evicting any whose write fails."""
        frame = event.to_sse()
        with self._lock:
            subscribers = list(self._subscribers.items())

        logger.debug("Broadcasting %s to %d subscribers", event.type, len(subscribers))
        for subscriber_id, transport in subscribers:
            self._send(subscriber_id, transport, frame)

    def unicast(self, subscriber_id: str, event: BroadcastEvent) -> None:
        """Write event to one sink, evicting it if the write fails."""
        with self._lock:
            transport = self._subscribers.get(subscriber_id)
        if transport is None:
            return
        self._send(subscriber_id, transport, event.to_sse())

    def count(self) -> int:
        """Number of registered sinks."""
        with self._lock:
            return len(self._subscribers)

    def close_all(self) -> None:
        """Unregister and close every sink."""
        with self._lock:
            subscriber_ids = list(self._subscribers)
        for subscriber_id in subscriber_ids:
            self.unsubscribe(subscriber_id)

    def _send(
        self, subscriber_id: str, transport: ISubscriberTransport, frame: str
    ) -> None:
        try:
            transport.send(frame)
        except Exception as e:
            logger.warning("Evicting subscriber %s after failed write: %r", subscriber_id, e)
            self._evict(subscriber_id, transport)

    def _handle_closed(
        self, subscriber_id: str, transport: ISubscriberTransport
    ) -> None:
        if self._discard(subscriber_id, transport):
            logger.info("Subscriber disconnected: %s", subscriber_id)

    def _evict(self, subscriber_id: str, transport: ISubscriberTransport) -> None:
        if not self._discard(subscriber_id, transport):
            return
        try:
            transport.close()
        except Exception as e:
            logger.error("Error closing transport for %s: %s", subscriber_id, e)

    def _discard(self, subscriber_id: str, transport: ISubscriberTransport) -> bool:
        """Remove subscriber_id only while it still maps to this transport."""
        with self._lock:
            if self._subscribers.get(subscriber_id) is not transport:
                return False
            del self._subscribers[subscriber_id]
        return True
