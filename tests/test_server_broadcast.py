"""Tests for redeye.server.broadcast.ClientBroadcaster outside the web app."""

from __future__ import annotations

import asyncio
import logging
import uuid

from redeye.core.bus import EventBus
from redeye.core.types import Event, EventType
from redeye.server.broadcast import ClientBroadcaster


def _drain(queue: asyncio.Queue[str]) -> list[str]:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


class TestOverflow:
    def test_full_queue_drops_oldest_event_and_keeps_client(self, caplog) -> None:
        broadcaster = ClientBroadcaster(queue_size=2)

        async def scenario() -> tuple[list[str], int, list[str]]:
            async with broadcaster.register(uuid.uuid4()) as queue:
                for text in ("first", "second", "third"):
                    await broadcaster.fan_out(text)
                backlog = _drain(queue)
                registered = broadcaster.client_count
                await broadcaster.fan_out("fourth")
                return backlog, registered, _drain(queue)

        with caplog.at_level(logging.WARNING, logger="redeye.server.broadcast"):
            backlog, registered, later = asyncio.run(scenario())

        assert backlog == ["second", "third"]
        assert registered == 1
        assert later == ["fourth"]
        assert any("not keeping up" in r.getMessage() for r in caplog.records)

    def test_slow_client_does_not_affect_others(self) -> None:
        broadcaster = ClientBroadcaster(queue_size=1)

        async def scenario() -> tuple[list[str], list[str]]:
            async with broadcaster.register(uuid.uuid4()) as slow, \
                    broadcaster.register(uuid.uuid4()) as fast:
                await broadcaster.fan_out("a")
                fast_seen = _drain(fast)
                await broadcaster.fan_out("b")
                fast_seen += _drain(fast)
                return _drain(slow), fast_seen

        slow_seen, fast_seen = asyncio.run(scenario())

        assert slow_seen == ["b"]
        assert fast_seen == ["a", "b"]


class TestHandleEvent:
    def test_event_reaches_registered_client(self) -> None:
        broadcaster = ClientBroadcaster()
        event = Event(event_type=EventType.keyboardEvent, context_text="k")

        async def scenario() -> str:
            broadcaster.bind_loop(asyncio.get_running_loop())
            async with broadcaster.register(uuid.uuid4()) as queue:
                broadcaster.handle_event(event, EventBus())
                return await asyncio.wait_for(queue.get(), timeout=2)

        assert asyncio.run(scenario()) == event.to_json()

    def test_fan_out_failure_is_logged(self, caplog) -> None:
        broadcaster = ClientBroadcaster()

        async def broken(text: str) -> None:
            raise RuntimeError("queue exploded")

        broadcaster.fan_out = broken  # type: ignore[method-assign]

        async def scenario() -> None:
            broadcaster.bind_loop(asyncio.get_running_loop())
            broadcaster.handle_event(Event(event_type=EventType.keyboardEvent), EventBus())
            await asyncio.sleep(0.1)

        with caplog.at_level(logging.ERROR, logger="redeye.server.broadcast"):
            asyncio.run(scenario())

        failures = [r for r in caplog.records if r.getMessage() == "Broadcast fan-out failed"]
        assert len(failures) == 1
        assert isinstance(failures[0].exc_info[1], RuntimeError)

    def test_without_loop_event_is_dropped(self) -> None:
        broadcaster = ClientBroadcaster()
        broadcaster.handle_event(Event(event_type=EventType.keyboardEvent), EventBus())
        assert broadcaster.client_count == 0
