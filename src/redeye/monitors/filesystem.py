"""Polling filesystem monitor (``fsEventMonitorManager``).

Watches the directories listed in the monitor's ``paths`` parameter and
publishes one ``fileSystemEvent`` per created, modified or removed entry.
Change detection diffs ``stat`` snapshots taken every *poll_seconds*, so
it works the same on every platform without native watch APIs.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import NamedTuple

from redeye.core.bus import EventBus
from redeye.core.defaults import DEFAULT_FS_POLL_SECONDS, DEFAULT_FS_WATCH_DIRS
from redeye.core.types import (
    Event,
    EventType,
    GeneralAppSettings,
    MonitorSpecificConfig,
    MonitorType,
)

logger = logging.getLogger(__name__)


class _Entry(NamedTuple):
    mtime_ns: int
    size: int
    is_dir: bool


def _stat_entry(path: Path) -> _Entry | None:
    try:
        st = path.stat()
    except OSError:
        return None
    return _Entry(st.st_mtime_ns, st.st_size, path.is_dir())


def scan_tree(roots: list[Path]) -> dict[Path, _Entry]:
    """Snapshot every file and directory below *roots* (roots included)."""
    snapshot: dict[Path, _Entry] = {}
    for root in roots:
        entry = _stat_entry(root)
        if entry is None:
            logger.debug("Watch path %s is missing", root)
            continue
        snapshot[root] = entry
        if not entry.is_dir:
            continue
        for dirpath, dirnames, filenames in os.walk(root):
            for name in dirnames + filenames:
                child = Path(dirpath) / name
                child_entry = _stat_entry(child)
                if child_entry is not None:
                    snapshot[child] = child_entry
    return snapshot


def _change_event(path: Path, change: str, entry: _Entry) -> Event:
    return Event(
        event_type=EventType.fileSystemEvent,
        context_text=str(path),
        metadata={
            f"fs_item_{change}": "true",
            "fs_item_type": "directory" if entry.is_dir else "file",
        },
    )


def diff_snapshots(
    before: dict[Path, _Entry], after: dict[Path, _Entry]
) -> list[Event]:
    """Events for everything created, removed or modified between two snapshots.

    Directory modifications are not reported; the created or removed
    children already describe the change.
    """
    events: list[Event] = []
    for path in sorted(before.keys() | after.keys()):
        old, new = before.get(path), after.get(path)
        if old is None and new is not None:
            events.append(_change_event(path, "created", new))
        elif new is None and old is not None:
            events.append(_change_event(path, "removed", old))
        elif old is not None and new is not None and old != new and not new.is_dir:
            events.append(_change_event(path, "modified", new))
    return events


class FileSystemMonitor:
    """Polls watched directories on a daemon thread and publishes changes.

    Args:
        bus: Bus that receives the ``fileSystemEvent`` events.
        poll_seconds: Seconds between snapshots.
        default_paths: Directories watched when the ``paths`` parameter
            is empty or absent.
    """

    monitor_type = MonitorType.fsEventMonitorManager

    def __init__(
        self,
        bus: EventBus,
        *,
        poll_seconds: float = DEFAULT_FS_POLL_SECONDS,
        default_paths: tuple[str, ...] = DEFAULT_FS_WATCH_DIRS,
    ) -> None:
        self._bus = bus
        self._poll_seconds = poll_seconds
        self._default_paths = default_paths
        self._paths: list[Path] = []
        self._snapshot: dict[Path, _Entry] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    @property
    def is_active(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def apply_configuration(
        self, config: MonitorSpecificConfig, general: GeneralAppSettings
    ) -> bool:
        raw_paths: list[str] = []
        param = (config.parameters or {}).get("paths")
        items = param.as_list() if param is not None else None
        if param is not None and items is None:
            logger.warning("Ignoring 'paths' parameter of kind %s; expected an array", param.kind)
        for item in items or []:
            text = item.as_str()
            if text is None:
                logger.warning("Ignoring non-string watch path %s", item)
                continue
            raw_paths.append(text)

        paths = [Path(p).expanduser() for p in (raw_paths or self._default_paths)]
        with self._lock:
            if paths != self._paths:
                self._paths = paths
                self._snapshot = scan_tree(paths)
                logger.info("Configured to watch paths: %s", [str(p) for p in paths])
        return config.is_enabled

    def start(self) -> bool:
        if self.is_active:
            logger.error("Filesystem monitor already running")
            return True
        existing = [p for p in self._paths if p.exists()]
        if not existing:
            logger.error("No existing paths to watch; filesystem monitor not started")
            return False
        with self._lock:
            self._snapshot = scan_tree(self._paths)
        # a fresh event per run; a thread still finishing keeps its own, already set
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self.run, args=(self._stop,), name="redeye-fs-monitor", daemon=True
        )
        self._thread.start()
        return True

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=self._poll_seconds + 1.0)
        if thread.is_alive():
            logger.warning("Filesystem poll thread still finishing its last scan")
        else:
            self._thread = None

    def check_changes(self) -> list[Event]:
        """Take one snapshot, publish the differences and return them."""
        with self._lock:
            current = scan_tree(self._paths)
            events = diff_snapshots(self._snapshot, current)
            self._snapshot = current
        for event in events:
            self._bus.publish(event)
        if events:
            logger.debug("Published %d filesystem event(s)", len(events))
        return events

    def run(self, stop: threading.Event | None = None) -> None:
        """Blocking poll loop until *stop* (default: the current run's event) is set."""
        stop = stop or self._stop
        while not stop.wait(timeout=self._poll_seconds):
            try:
                self.check_changes()
            except Exception:
                logger.exception("Filesystem poll failed")
