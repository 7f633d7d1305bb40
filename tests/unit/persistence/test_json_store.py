"""Unit tests for JsonStore."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from autobot.persistence import JsonStore


@pytest.mark.asyncio
async def test_load_missing_file_returns_default_copy(tmp_path: Path) -> None:
    default: dict[str, list[int]] = {"items": []}
    store: JsonStore[dict] = JsonStore(tmp_path / "doc.json", default)
    loaded = await store.load()
    loaded["items"].append(1)
    assert default == {"items": []}
    assert await store.load() == {"items": []}


@pytest.mark.asyncio
async def test_save_then_load(tmp_path: Path) -> None:
    store: JsonStore[list] = JsonStore(tmp_path / "nested" / "doc.json", [])
    await store.save([{"a": 1}])
    assert await store.load() == [{"a": 1}]
    assert json.loads((tmp_path / "nested" / "doc.json").read_text(encoding="utf-8")) == [{"a": 1}]


@pytest.mark.asyncio
async def test_corrupt_file_falls_back_to_default(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "doc.json"
    path.write_text("{not json", encoding="utf-8")
    store: JsonStore[dict] = JsonStore(path, {"fallback": True})
    assert await store.load() == {"fallback": True}
    assert "Unreadable JSON document" in caplog.text


def test_save_leaves_no_temp_files(tmp_path: Path) -> None:
    store: JsonStore[dict] = JsonStore(tmp_path / "doc.json", {})
    store.save_sync({"x": 1})
    store.save_sync({"x": 2})
    assert sorted(p.name for p in tmp_path.iterdir()) == ["doc.json"]
    assert store.load_sync() == {"x": 2}


def test_failed_save_keeps_previous_document(tmp_path: Path) -> None:
    store: JsonStore[dict] = JsonStore(tmp_path / "doc.json", {})
    store.save_sync({"x": 1})
    with pytest.raises(TypeError):
        store.save_sync({"x": object()})
    assert store.load_sync() == {"x": 1}
    assert sorted(p.name for p in tmp_path.iterdir()) == ["doc.json"]
