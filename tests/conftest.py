"""Shared fixtures for the redeye test suite."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from redeye.core.bus import EventBus
from redeye.core.config import ConfigurationStore
from redeye.core.types import Event
from redeye.ipc.router import CommandRouter


class Recorder:
    """Bus subscriber that remembers every event it was handed."""

    def __init__(self, name: str = "recorder", log: list[str] | None = None) -> None:
        self.name = name
        self.events: list[Event] = []
        self._log = log

    def handle_event(self, event: Event, bus: EventBus) -> None:
        self.events.append(event)
        if self._log is not None:
            self._log.append(self.name)


@pytest.fixture(autouse=True)
def _restore_app_log_level():
    """Stores and routers adjust the ``redeye`` logger level; undo it per test."""
    app_logger = logging.getLogger("redeye")
    level = app_logger.level
    yield
    app_logger.setLevel(level)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "redeye" / "config.json"


@pytest.fixture()
def store(config_path: Path) -> ConfigurationStore:
    return ConfigurationStore(config_path)


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def router(store: ConfigurationStore) -> CommandRouter:
    return CommandRouter(store)


def send(router: CommandRouter, command: Any, client_id: str | None = "test-client") -> dict[str, Any]:
    """Encode *command*, route it and decode the response."""
    raw = command if isinstance(command, (str, bytes)) else json.dumps(command)
    reply = router.handle(raw, client_id)
    assert reply is not None
    return json.loads(reply)
