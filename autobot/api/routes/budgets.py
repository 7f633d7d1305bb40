"""Budget endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from autobot.api.deps import autobot_dep

router = APIRouter(prefix="/api/budgets", tags=["budgets"])


class AddBudgetRequest(BaseModel):
    amount: float = Field(gt=0)


class AllocateBudgetRequest(BaseModel):
    amount: float = Field(ge=0)
    alert_threshold: float | None = Field(default=None, ge=0.0, le=1.0)


@router.get("")
async def list_budgets(autobot: autobot_dep) -> list[dict]:
    return [budget.to_dict() for budget in await autobot.cost_api.get_all_budgets()]


@router.get("/{key}")
async def get_budget(key: str, autobot: autobot_dep) -> dict:
    budget = await autobot.cost_api.get_budget(key)
    if budget is None:
        raise HTTPException(status_code=404, detail=f"No budget allocated for service: {key}")
    return budget.to_dict()


@router.post("/{key}/add")
async def add_budget(key: str, body: AddBudgetRequest, autobot: autobot_dep) -> dict:
    return (await autobot.cost_api.add_budget(key, body.amount)).to_dict()


@router.post("/{key}/allocate")
async def allocate_budget(key: str, body: AllocateBudgetRequest, autobot: autobot_dep) -> dict:
    budget = await autobot.cost_api.allocate_budget(key, body.amount, body.alert_threshold)
    return budget.to_dict()
