"""JSON file I/O primitives for persisting configuration."""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any


def dumps_canonical(data: Any) -> str:
    """Serialize *data* deterministically (sorted keys, 2-space indent, trailing newline)."""
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def write_json_atomic(data: Any, path: Path) -> Path:
    """Write *data* as JSON to *path* atomically.

    Writes to a temporary file in the same directory first, then
    atomically replaces the target via :func:`os.replace`.  This
    prevents readers from ever seeing a partially-written file.

    Args:
        data: JSON-compatible value to persist.
        path: Destination file path (e.g. ``~/.config/redeye/config.json``).

    Returns:
        The *path* that was written, for convenient chaining.

    Raises:
        OSError: If the directory cannot be created or the file cannot be
            written or replaced.  The previous file content is left intact.
    """
    payload = dumps_canonical(data).encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".json.tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise
    return path


def read_json(path: Path) -> Any:
    """Read and parse a UTF-8 JSON file.

    Raises:
        FileNotFoundError: If *path* does not exist.
        OSError: If the file cannot be read.
        ValueError: If the content is not valid UTF-8 JSON.
    """
    return json.loads(path.read_text("utf-8"))
