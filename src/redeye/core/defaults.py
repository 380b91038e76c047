"""Centralised default constants for redeye.

Every project-wide magic number / string lives here.
Import these instead of hard-coding values in function signatures or CLI options.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Final

# ── Identity ──
APP_NAME: Final[str] = "RedEye"
CONFIG_SCHEMA_VERSION: Final[str] = "1.0"

# ── Paths ──
CONFIG_FILENAME: Final[str] = "config.json"
CONFIG_PATH_ENV: Final[str] = "REDEYE_CONFIG_PATH"

# ── WebSocket server ──
DEFAULT_HOST: Final[str] = "localhost"
DEFAULT_PORT: Final[int] = 8765
DEFAULT_CLIENT_QUEUE_SIZE: Final[int] = 256

# ── Monitors ──
DEFAULT_FS_POLL_SECONDS: Final[float] = 2.0
DEFAULT_FS_WATCH_DIRS: Final[tuple[str, ...]] = ("~/Documents", "~/Downloads")

# ── Logging ──
DEFAULT_LOG_LEVEL: Final[str] = "info"


def default_config_path() -> Path:
    """Return the per-user location of ``config.json``.

    Resolution order:

    1. ``$REDEYE_CONFIG_PATH`` if set.
    2. macOS: ``~/Library/Application Support/RedEye/config.json``.
    3. Elsewhere: ``$XDG_CONFIG_HOME/redeye/config.json``, falling back
       to ``~/.config/redeye/config.json``.
    """
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME / CONFIG_FILENAME
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / APP_NAME.lower() / CONFIG_FILENAME
