"""Standalone task endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response

from autobot.api.deps import autobot_dep
from autobot.errors import TaskNotFoundError
from autobot.tasks.models import CreateTaskInput

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("")
async def list_tasks(autobot: autobot_dep, service_type: str | None = None) -> list[dict]:
    return [task.model_dump(mode="json") for task in await autobot.executor.list_tasks(service_type)]


@router.post("", status_code=201)
async def create_task(body: CreateTaskInput, autobot: autobot_dep) -> dict:
    if body.run_now:
        task = await autobot.executor.create_and_run(body)
    else:
        task = await autobot.executor.create_and_schedule(body)
    return task.model_dump(mode="json")


@router.get("/{task_id}")
async def get_task(task_id: str, autobot: autobot_dep) -> dict:
    task = await autobot.executor.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    budget = await autobot.cost_api.get_budget(task.budget_key)
    return {**task.model_dump(mode="json"), "budget_state": budget.to_dict() if budget else None}


@router.delete("/{task_id}", status_code=204)
async def delete_task(task_id: str, autobot: autobot_dep) -> Response:
    if await autobot.executor.get_task(task_id) is None:
        raise TaskNotFoundError(task_id)
    await autobot.executor.delete_task(task_id)
    return Response(status_code=204)
