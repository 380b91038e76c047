"""Uniform start/stop driver for event monitors.

Every monitor implements the small :class:`Monitor` protocol;
:class:`MonitorLifecycle` reads each monitor's stored settings and starts
or stops it to match.

Usage::

    lifecycle = MonitorLifecycle(store, [FileSystemMonitor(bus)])
    lifecycle.start_all()
    ...
    store.set_monitor_enabled(MonitorType.fsEventMonitorManager, False)
    lifecycle.reload()      # stops the filesystem monitor
    lifecycle.stop_all()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from redeye.core.config import ConfigurationStore
from redeye.core.types import GeneralAppSettings, MonitorSpecificConfig, MonitorType

logger = logging.getLogger(__name__)


@runtime_checkable
class Monitor(Protocol):
    """Capabilities every event producer provides."""

    monitor_type: MonitorType

    @property
    def is_active(self) -> bool: ...

    def apply_configuration(
        self, config: MonitorSpecificConfig, general: GeneralAppSettings
    ) -> bool:
        """Take new settings; return ``True`` if the monitor should be running."""
        ...

    def start(self) -> bool:
        """Begin producing events; return ``True`` on success."""
        ...

    def stop(self) -> None:
        """Stop producing events.  Safe to call when already stopped."""
        ...


class MonitorLifecycle:
    """Drives a fixed set of monitors from the configuration store.

    Args:
        store: Source of per-monitor and general settings.
        monitors: Monitors to manage, started in the given order and
            stopped in reverse.
    """

    def __init__(self, store: ConfigurationStore, monitors: Iterable[Monitor]) -> None:
        self._store = store
        self._monitors = list(monitors)

    @property
    def monitors(self) -> list[Monitor]:
        return list(self._monitors)

    def active_monitors(self) -> list[MonitorType]:
        return [m.monitor_type for m in self._monitors if m.is_active]

    def start_all(self) -> None:
        """Apply stored settings to every monitor and start the enabled ones."""
        logger.info("Starting %d monitor(s)", len(self._monitors))
        for monitor in self._monitors:
            self._sync(monitor)

    def reload(self) -> None:
        """Re-read settings and start or stop monitors to match."""
        logger.info("Reloading monitor configuration")
        for monitor in self._monitors:
            self._sync(monitor)

    def stop_all(self) -> None:
        for monitor in reversed(self._monitors):
            if not monitor.is_active:
                continue
            try:
                monitor.stop()
            except Exception:
                logger.exception("Monitor %s failed to stop cleanly", monitor.monitor_type)
            else:
                logger.info("Monitor %s stopped", monitor.monitor_type)

    def _sync(self, monitor: Monitor) -> None:
        mt = monitor.monitor_type
        setting = self._store.get_monitor_setting(mt)
        if setting is None:
            logger.error("No settings for monitor %s; leaving it untouched", mt)
            return

        should_run = monitor.apply_configuration(setting, self._store.get_general_settings())
        if not should_run:
            if monitor.is_active:
                monitor.stop()
                logger.info("Monitor %s disabled and stopped", mt)
            return

        if monitor.is_active:
            logger.debug("Monitor %s already running with updated settings", mt)
            return

        try:
            started = monitor.start()
        except Exception:
            logger.exception("Monitor %s raised while starting", mt)
            started = False
        if started:
            logger.info("Monitor %s started", mt)
            return

        logger.error("Monitor %s failed to start; ensuring it is stopped", mt)
        try:
            monitor.stop()
        except Exception:
            logger.exception("Monitor %s failed to stop after a failed start", mt)
