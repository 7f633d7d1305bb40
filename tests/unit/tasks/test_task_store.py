"""Unit tests for TaskStore."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from autobot.tasks import (
    ReportTaskParams,
    StandaloneTask,
    StandaloneTaskStatus,
    TaskServiceType,
    TaskStore,
)


def _task(task_id: str) -> StandaloneTask:
    return StandaloneTask(
        task_id=task_id,
        service_type=TaskServiceType.REPORT,
        params=ReportTaskParams(prompt="weekly status"),
        budget=2.0,
    )


@pytest.mark.asyncio
async def test_create_get_and_filter(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.json")
    await store.create(_task("a"))
    await store.create(_task("b"))
    assert [t.task_id for t in await store.get_all()] == ["a", "b"]
    assert (await store.get_by_id("b")) is not None
    assert await store.get_by_id("zzz") is None
    assert len(await store.get_by_service("report")) == 2
    assert await store.get_by_service("research") == []


@pytest.mark.asyncio
async def test_update_validates_and_persists(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    store = TaskStore(path)
    await store.create(_task("a"))
    updated = await store.update("a", status=StandaloneTaskStatus.RUNNING, started_at="2026-01-01T00:00:00+00:00")
    assert updated is not None and updated.status == StandaloneTaskStatus.RUNNING
    reloaded = await TaskStore(path).get_by_id("a")
    assert reloaded is not None
    assert reloaded.started_at == "2026-01-01T00:00:00+00:00"
    assert reloaded.params.prompt == "weekly status"


@pytest.mark.asyncio
async def test_update_missing_task_is_noop(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.json")
    assert await store.update("ghost", status=StandaloneTaskStatus.COMPLETED) is None
    assert await store.get_all() == []


@pytest.mark.asyncio
async def test_concurrent_increments_are_not_lost(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.json")
    await store.create(_task("a"))
    await asyncio.gather(*(store.increment_cycles("a") for _ in range(20)))
    task = await store.get_by_id("a")
    assert task is not None and task.cycles_completed == 20


@pytest.mark.asyncio
async def test_delete(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.json")
    await store.create(_task("a"))
    await store.delete("a")
    await store.delete("a")
    assert await store.get_all() == []


@pytest.mark.asyncio
async def test_unreadable_rows_are_skipped(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    good = _task("ok").model_dump(mode="json")
    path.write_text(json.dumps([good, {"task_id": "broken"}]), encoding="utf-8")
    assert [t.task_id for t in await TaskStore(path).get_all()] == ["ok"]
