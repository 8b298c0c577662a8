"""Server-sent event bridge between the EventBus and one client connection.

Each connection owns an asyncio queue of pre-encoded frames.  The bus
callback only enqueues (never awaits), so a slow reader cannot hold up
``EventBus.publish`` or any other connection.

Frame format::

    data: {"id": ..., "type": ..., "message": ..., "timestamp": ..., "status": ..., "data": ...}\\n\\n
    : keepalive\\n\\n
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

import structlog

from errorflow.models.events import Event, EventKind
from errorflow.observability.metrics import stream_connections_active, stream_frames_dropped_total
from errorflow.realtime.bus import EventBus, Unsubscribe

_log = structlog.get_logger(component="realtime.stream")

KEEPALIVE_FRAME = ": keepalive\n\n"
DEFAULT_KEEPALIVE_SECONDS = 30.0


class StreamState(StrEnum):
    """Lifecycle of a single stream connection."""

    OPENING = "opening"
    OPEN = "open"
    CLOSED = "closed"


def encode_frame(payload: dict[str, Any]) -> str:
    """Serialise *payload* as a single SSE ``data:`` frame."""
    return f"data: {json.dumps(payload, default=str, separators=(',', ':'))}\n\n"


def encode_event(event: Event) -> str:
    return encode_frame(event.to_wire())


def connected_frame() -> str:
    return encode_frame(
        {
            "type": EventKind.CONNECTED.value,
            "message": "Realtime connection established",
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }
    )


class EventStreamConnection:
    """One open server-push channel: OPENING -> OPEN -> CLOSED.

    Args:
        bus:                Bus to subscribe to while open.
        keepalive_seconds:  Interval between ``: keepalive`` comment frames.
        max_pending:        Per-connection queue cap; 0 means unbounded.
                            When full, new frames for this connection are
                            dropped and counted.
    """

    def __init__(
        self,
        bus: EventBus,
        keepalive_seconds: float = DEFAULT_KEEPALIVE_SECONDS,
        max_pending: int = 0,
    ) -> None:
        self.connection_id = uuid4().hex[:12]
        self.state = StreamState.OPENING
        self._bus = bus
        self._keepalive_seconds = keepalive_seconds
        self._max_pending = max_pending
        # None is the wake-up sentinel pushed by close()
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._unsubscribe: Unsubscribe | None = None
        self._keepalive_task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def open(self) -> None:
        """Queue the ``connected`` frame, subscribe and start the keep-alive timer.

        Must be called from within a running event loop.
        """
        if self.state is not StreamState.OPENING:
            raise RuntimeError(f"Cannot open stream connection in state {self.state}")
        # Connected frame goes to this connection only, ahead of any bus traffic.
        self._enqueue(connected_frame())
        self._unsubscribe = self._bus.subscribe(self._forward)
        self._keepalive_task = asyncio.create_task(
            self._keepalive(), name=f"sse-keepalive-{self.connection_id}"
        )
        self.state = StreamState.OPEN
        stream_connections_active.inc()
        _log.info("stream_opened", connection_id=self.connection_id, subscribers=self._bus.subscriber_count)

    def close(self) -> None:
        """Release the subscription and the keep-alive timer.  Idempotent."""
        if self.state is StreamState.CLOSED:
            return
        was_open = self.state is StreamState.OPEN
        self.state = StreamState.CLOSED
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._keepalive_task is not None:
            self._keepalive_task.cancel()
            self._keepalive_task = None
        self._queue.put_nowait(None)
        if was_open:
            stream_connections_active.dec()
            _log.info("stream_closed", connection_id=self.connection_id)

    async def frames(self) -> AsyncIterator[str]:
        """Yield encoded frames until the connection closes.

        Opens the connection if needed.  Client disconnects surface here as
        cancellation or generator close; either way ``close()`` runs.
        """
        if self.state is StreamState.OPENING:
            self.open()
        try:
            while self.state is StreamState.OPEN:
                frame = await self._queue.get()
                if frame is None:
                    break
                yield frame
        finally:
            self.close()

    def _forward(self, event: Event) -> None:
        self._enqueue(encode_event(event))

    def _enqueue(self, frame: str) -> None:
        if self._max_pending and self._queue.qsize() >= self._max_pending:
            stream_frames_dropped_total.inc()
            _log.warning(
                "stream_frame_dropped",
                connection_id=self.connection_id,
                pending=self._queue.qsize(),
            )
            return
        self._queue.put_nowait(frame)

    async def _keepalive(self) -> None:
        while True:
            await asyncio.sleep(self._keepalive_seconds)
            self._enqueue(KEEPALIVE_FRAME)
