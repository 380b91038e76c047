"""Bridge from the synchronous :class:`~redeye.core.bus.EventBus` to WebSocket clients."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from redeye.core.bus import EventBus
from redeye.core.defaults import DEFAULT_CLIENT_QUEUE_SIZE
from redeye.core.types import Event

logger = logging.getLogger(__name__)


class ClientBroadcaster:
    """Bus subscriber that fans events out to per-client asyncio queues.

    Monitors publish on their own threads; :meth:`handle_event` encodes the
    event once and schedules delivery on the server loop via
    :func:`asyncio.run_coroutine_threadsafe`, so each client sees events in
    publish order.  A client whose queue is full loses its oldest pending
    event to make room; it stays registered.

    Args:
        queue_size: Capacity of each client's outbound queue.
    """

    def __init__(self, queue_size: int = DEFAULT_CLIENT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._clients: dict[uuid.UUID, asyncio.Queue[str]] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._bus: EventBus | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Bind to the running event loop (call once at startup)."""
        self._loop = loop

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(self)
        self._bus = bus

    def detach(self) -> None:
        if self._bus is not None:
            self._bus.unsubscribe(self)
            self._bus = None

    @property
    def client_count(self) -> int:
        return len(self._clients)

    # -- bus side (any thread) -------------------------------------------------

    def handle_event(self, event: Event, bus: EventBus) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("No server loop bound, dropping %s event %s", event.event_type, event.id)
            return
        future = asyncio.run_coroutine_threadsafe(self.fan_out(event.to_json()), loop)
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future: concurrent.futures.Future[None]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Broadcast fan-out failed", exc_info=exc)

    async def fan_out(self, text: str) -> None:
        """Queue *text* for every registered client (call on the server loop)."""
        for client_id, queue in list(self._clients.items()):
            if queue.full():
                queue.get_nowait()
                logger.warning("Client %s is not keeping up; dropped its oldest queued event", client_id)
            queue.put_nowait(text)

    # -- server side (event loop) ----------------------------------------------

    @asynccontextmanager
    async def register(self, client_id: uuid.UUID) -> AsyncIterator[asyncio.Queue[str]]:
        """Context manager yielding the queue of encoded events for *client_id*."""
        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=self._queue_size)
        self._clients[client_id] = queue
        logger.info("Client %s registered for broadcasts (total %d)", client_id, len(self._clients))
        try:
            yield queue
        finally:
            self._clients.pop(client_id, None)
            logger.info("Client %s unregistered (total %d)", client_id, len(self._clients))
