"""Cost reporting endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from autobot.api.deps import autobot_dep

router = APIRouter(prefix="/api/costs", tags=["costs"])


@router.get("")
async def service_summaries(autobot: autobot_dep) -> list[dict]:
    return [summary.to_dict() for summary in await autobot.cost_api.get_service_cost_summaries()]


@router.get("/{service_id}")
async def service_report(service_id: str, autobot: autobot_dep) -> dict:
    return (await autobot.cost_api.get_service_report(service_id)).to_dict()


@router.get("/{service_id}/tasks")
async def task_details(service_id: str, autobot: autobot_dep) -> list[dict]:
    return [summary.to_dict() for summary in await autobot.cost_api.get_task_details(service_id)]
