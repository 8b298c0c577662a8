"""In-process publish/subscribe broadcaster for pipeline progress events.

EventBus            -- Fans one Event out to every currently registered
                       callback, synchronously, within a single publish call.
Subscriber          -- Callback signature accepted by ``subscribe``.
Unsubscribe         -- Handle returned by ``subscribe``; idempotent.

The bus keeps no history.  A subscriber registered after an event was
published never sees that event, and nothing survives a restart.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable

import structlog

from errorflow.models.events import Event
from errorflow.observability.metrics import events_published_total, subscriber_failures_total

_log = structlog.get_logger(component="realtime.bus")

Subscriber = Callable[[Event], None]
Unsubscribe = Callable[[], None]


class EventBus:
    """Fan-out broadcaster with per-subscriber failure isolation.

    * ``publish`` never raises because of a subscriber: exceptions are
      logged and counted, and delivery continues with the next callback.
    * ``publish`` contains no ``await``.  Under asyncio it cannot be
      interleaved with a subscribe or unsubscribe from another task, so
      each subscriber sees one submission's events in publish order.
    * Delivery order across subscribers is not part of the contract.
    """

    def __init__(self) -> None:
        # token -> callback; a token per registration so the same callable
        # may be subscribed twice and removed independently.
        self._subscribers: dict[int, Subscriber] = {}
        self._tokens = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        """Register *callback* and return a handle that removes exactly it."""
        token = next(self._tokens)
        self._subscribers[token] = callback
        _log.debug("subscriber_added", token=token, subscribers=len(self._subscribers))

        def unsubscribe() -> None:
            if self._subscribers.pop(token, None) is not None:
                _log.debug("subscriber_removed", token=token, subscribers=len(self._subscribers))

        return unsubscribe

    def publish(self, event: Event) -> int:
        """Deliver *event* to every subscriber registered at call time.

        Returns:
            Number of callbacks that accepted the event without raising.
        """
        events_published_total.labels(kind=event.kind.value, status=event.status.value).inc()
        delivered = 0
        for token, callback in list(self._subscribers.items()):
            try:
                callback(event)
            except Exception as exc:  # noqa: BLE001
                subscriber_failures_total.inc()
                _log.warning(
                    "subscriber_callback_failed",
                    token=token,
                    event_id=event.id,
                    kind=event.kind.value,
                    error=str(exc),
                )
                continue
            delivered += 1
        return delivered
