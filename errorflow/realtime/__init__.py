"""Realtime event distribution: in-process bus and SSE connections."""

from errorflow.realtime.bus import EventBus, Subscriber, Unsubscribe
from errorflow.realtime.stream import (
    KEEPALIVE_FRAME,
    EventStreamConnection,
    StreamState,
    encode_event,
    encode_frame,
)

__all__ = [
    "KEEPALIVE_FRAME",
    "EventBus",
    "EventStreamConnection",
    "StreamState",
    "Subscriber",
    "Unsubscribe",
    "encode_event",
    "encode_frame",
]
