"""Persisted list of standalone tasks."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from autobot.persistence import JsonStore
from autobot.tasks.models import StandaloneTask

logger = logging.getLogger(__name__)


class TaskStore:
    """Whole-document store of :class:`StandaloneTask` records.

    Writes share one lock, so concurrent updates to the same task apply in
    turn instead of overwriting each other.
    """

    def __init__(self, path: str | Path) -> None:
        self._store: JsonStore[list[dict[str, Any]]] = JsonStore(path, [])
        self._lock = asyncio.Lock()

    async def _load(self) -> list[StandaloneTask]:
        rows = await self._store.load()
        tasks: list[StandaloneTask] = []
        for row in rows if isinstance(rows, list) else []:
            try:
                tasks.append(StandaloneTask.model_validate(row))
            except ValueError as exc:
                logger.warning("Skipping unreadable task record: %s", exc)
        return tasks

    async def _save(self, tasks: list[StandaloneTask]) -> None:
        await self._store.save([task.model_dump(mode="json") for task in tasks])

    async def get_all(self) -> list[StandaloneTask]:
        return await self._load()

    async def get_by_id(self, task_id: str) -> StandaloneTask | None:
        for task in await self._load():
            if task.task_id == task_id:
                return task
        return None

    async def get_by_service(self, service_type: str) -> list[StandaloneTask]:
        return [task for task in await self._load() if task.service_type.value == service_type]

    async def create(self, task: StandaloneTask) -> None:
        async with self._lock:
            tasks = await self._load()
            tasks.append(task)
            await self._save(tasks)

    async def update(self, task_id: str, **changes: Any) -> StandaloneTask | None:
        """Apply ``changes`` to one task. Returns ``None`` if it no longer exists."""
        async with self._lock:
            tasks = await self._load()
            for index, task in enumerate(tasks):
                if task.task_id == task_id:
                    updated = StandaloneTask.model_validate({**task.model_dump(), **changes})
                    tasks[index] = updated
                    await self._save(tasks)
                    return updated
        return None

    async def increment_cycles(self, task_id: str) -> StandaloneTask | None:
        async with self._lock:
            tasks = await self._load()
            for index, task in enumerate(tasks):
                if task.task_id == task_id:
                    tasks[index] = task.model_copy(update={"cycles_completed": task.cycles_completed + 1})
                    await self._save(tasks)
                    return tasks[index]
        return None

    async def delete(self, task_id: str) -> None:
        async with self._lock:
            tasks = await self._load()
            remaining = [task for task in tasks if task.task_id != task_id]
            if len(remaining) != len(tasks):
                await self._save(remaining)
