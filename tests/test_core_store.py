"""Tests for redeye.core.store: canonical JSON and atomic writes."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from redeye.core.store import dumps_canonical, read_json, write_json_atomic


def test_dumps_canonical_is_sorted_and_newline_terminated():
    text = dumps_canonical({"b": 1, "a": {"d": 2, "c": 3}})
    assert text.endswith("}\n")
    assert text.index('"a"') < text.index('"b"')
    assert text.index('"c"') < text.index('"d"')
    assert dumps_canonical({"a": 1, "b": 2}) == dumps_canonical({"b": 2, "a": 1})


def test_dumps_canonical_keeps_unicode():
    assert "café" in dumps_canonical({"name": "café"})


def test_write_creates_parent_dirs(tmp_path: Path):
    path = tmp_path / "nested" / "dir" / "config.json"
    write_json_atomic({"x": 1}, path)
    assert json.loads(path.read_text("utf-8")) == {"x": 1}


def test_write_leaves_no_temp_files(tmp_path: Path):
    path = tmp_path / "config.json"
    write_json_atomic({"x": 1}, path)
    write_json_atomic({"x": 2}, path)
    assert [p.name for p in tmp_path.iterdir()] == ["config.json"]


def test_failed_replace_keeps_previous_content(tmp_path: Path, monkeypatch):
    path = tmp_path / "config.json"
    write_json_atomic({"version": 1}, path)
    before = path.read_bytes()

    def boom(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("redeye.core.store.os.replace", boom)
    with pytest.raises(OSError):
        write_json_atomic({"version": 2}, path)

    assert path.read_bytes() == before
    assert [p.name for p in tmp_path.iterdir()] == ["config.json"]


def test_read_json_missing(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        read_json(tmp_path / "absent.json")


def test_read_json_invalid(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", "utf-8")
    with pytest.raises(ValueError):
        read_json(path)
