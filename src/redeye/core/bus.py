"""Synchronous in-process event bus.

Monitors publish :class:`~redeye.core.types.Event` objects; subscribers
such as the WebSocket broadcaster receive them in subscription order on
the publisher's thread.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Protocol, runtime_checkable

from redeye.core.types import Event

logger = logging.getLogger(__name__)


@runtime_checkable
class EventSubscriber(Protocol):
    """Anything with a ``handle_event(event, bus)`` method can subscribe."""

    def handle_event(self, event: Event, bus: EventBus) -> None: ...


class EventBus:
    """Thread-safe publish/subscribe hub holding subscribers by weak reference.

    The bus never keeps a subscriber alive: once the owner drops it, the
    dead reference is pruned on the next subscribe/unsubscribe/publish.
    Owners are still expected to call :meth:`unsubscribe` in their
    shutdown path.

    :meth:`publish` delivers synchronously, in subscription order, to a
    snapshot of the subscribers taken when the call starts.  A subscriber
    that raises is logged and skipped; delivery continues.
    """

    def __init__(self) -> None:
        self._subscribers: list[weakref.ReferenceType[EventSubscriber]] = []
        self._lock = threading.Lock()

    def _live(self) -> list[EventSubscriber]:
        """Prune dead references and return live subscribers.  Caller holds the lock."""
        alive: list[EventSubscriber] = []
        refs: list[weakref.ReferenceType[EventSubscriber]] = []
        for ref in self._subscribers:
            sub = ref()
            if sub is not None:
                alive.append(sub)
                refs.append(ref)
        self._subscribers = refs
        return alive

    def subscribe(self, subscriber: EventSubscriber) -> None:
        """Register *subscriber*.  Subscribing the same object twice is a no-op."""
        with self._lock:
            if any(sub is subscriber for sub in self._live()):
                logger.debug("Subscriber %s already registered", type(subscriber).__name__)
                return
            self._subscribers.append(weakref.ref(subscriber))
            logger.debug(
                "Subscriber %s added (total %d)",
                type(subscriber).__name__, len(self._subscribers),
            )

    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        """Remove *subscriber* if present."""
        with self._lock:
            before = len(self._live())
            self._subscribers = [ref for ref in self._subscribers if ref() is not subscriber]
            if len(self._subscribers) == before:
                logger.debug("Subscriber %s not found for removal", type(subscriber).__name__)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._live())

    def publish(self, event: Event) -> int:
        """Deliver *event* to every current subscriber.

        Returns:
            The number of subscribers that handled the event without raising.
        """
        with self._lock:
            targets = self._live()

        if not targets:
            logger.debug("No subscribers for %s event %s", event.event_type, event.id)
            return 0

        logger.debug(
            "Publishing %s event %s to %d subscriber(s)",
            event.event_type, event.id, len(targets),
        )
        delivered = 0
        for sub in targets:
            try:
                sub.handle_event(event, self)
            except Exception:
                logger.exception(
                    "Subscriber %s failed handling %s event",
                    type(sub).__name__, event.event_type,
                )
            else:
                delivered += 1
        return delivered
