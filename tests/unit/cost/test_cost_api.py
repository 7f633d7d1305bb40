"""Unit tests for CostControlAPI."""

from __future__ import annotations

from pathlib import Path

import pytest

from autobot.cost import BudgetManager, CostControlAPI, CostTracker
from autobot.cost.models import DEFAULT_ALERT_THRESHOLD


@pytest.fixture
def api(tmp_path: Path, fake_usage) -> CostControlAPI:
    budgets = BudgetManager(tmp_path / "budgets.json")
    return CostControlAPI(budgets, CostTracker(tmp_path / "costs.json", budgets, usage_client=fake_usage))


@pytest.mark.asyncio
async def test_allocate_defaults_threshold(api: CostControlAPI) -> None:
    budget = await api.allocate_budget("report", 3.0)
    assert budget.alert_threshold == DEFAULT_ALERT_THRESHOLD
    budget = await api.allocate_budget("report", 3.0, 0.5)
    assert budget.alert_threshold == 0.5


@pytest.mark.asyncio
async def test_service_cost_summaries(api: CostControlAPI) -> None:
    await api.allocate_budget("research", 10.0)
    await api.allocate_budget("report", 10.0)
    for service_id, task_id in [("research", "a"), ("research", "a"), ("research", "b"), ("report", "r")]:
        await api.cost_tracker.capture_and_record_cost(
            service_id=service_id, task_id=task_id, task_label=task_id, iteration=1, session_id=f"s-{task_id}"
        )

    summaries = {row.service_id: row for row in await api.get_service_cost_summaries()}
    assert summaries["research"].task_count == 2
    assert summaries["research"].iteration_count == 3
    assert summaries["research"].total_cost == pytest.approx(0.75)
    assert summaries["research"].total_tokens == 450
    assert summaries["report"].task_count == 1


@pytest.mark.asyncio
async def test_check_and_get_budget(api: CostControlAPI) -> None:
    assert await api.get_budget("none") is None
    allowed, _ = await api.check_budget("none")
    assert allowed is False
    await api.add_budget("x", 1.0)
    assert (await api.check_budget("x"))[0] is True
    assert [b.key for b in await api.get_all_budgets()] == ["x"]
