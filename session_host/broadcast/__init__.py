"""Broadcast module."""

from .hub import BroadcastHub, IBroadcastHub
from .transport import (
    CONNECTED_FRAME,
    KEEPALIVE_FRAME,
    ISubscriberTransport,
    QueueTransport,
    TransportClosed,
)

__all__ = [
    "BroadcastHub",
    "IBroadcastHub",
    "ISubscriberTransport",
    "QueueTransport",
    "TransportClosed",
    "CONNECTED_FRAME",
    "KEEPALIVE_FRAME",
]
