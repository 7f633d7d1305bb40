"""Unit tests for CostTracker."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from autobot.cost import BudgetManager, CostEntry, CostTracker
from autobot.errors import BudgetNotFoundError
from autobot.messaging import Message, MessageBus, MessageType


def _entry(service_id: str, task_id: str, cost: float, iteration: int = 1, timestamp: str = "") -> CostEntry:
    return CostEntry(
        service_id=service_id,
        task_id=task_id,
        task_label=f"{service_id}: {task_id}",
        session_id=f"s-{task_id}-{iteration}",
        iteration=iteration,
        tokens_input=100,
        tokens_output=20,
        cache_creation_tokens=0,
        cache_read_tokens=0,
        estimated_cost=cost,
        timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
    )


@pytest.fixture
def budget_manager(tmp_path: Path) -> BudgetManager:
    return BudgetManager(tmp_path / "budgets.json")


@pytest.mark.asyncio
async def test_record_task_cost_deducts_and_publishes(tmp_path: Path, budget_manager: BudgetManager, fake_usage) -> None:
    bus = MessageBus()
    seen: list[Message] = []

    async def handler(message: Message) -> None:
        seen.append(message)

    bus.subscribe(MessageType.COST_RECORDED, handler)
    tracker = CostTracker(tmp_path / "costs.json", budget_manager, bus, fake_usage)
    await budget_manager.allocate("report", 5.0)
    await tracker.record_task_cost(_entry("report", "t1", 1.25))
    await bus.drain()

    budget = await budget_manager.get_budget("report")
    assert budget is not None and budget.spent == pytest.approx(1.25)
    assert seen[0].payload["task_id"] == "t1"


@pytest.mark.asyncio
async def test_entry_kept_when_deduction_fails(tmp_path: Path, budget_manager: BudgetManager, fake_usage) -> None:
    tracker = CostTracker(tmp_path / "costs.json", budget_manager, usage_client=fake_usage)
    with pytest.raises(BudgetNotFoundError):
        await tracker.record_task_cost(_entry("unfunded", "t1", 0.5))
    entries = await tracker.get_entries("unfunded")
    assert [entry.task_id for entry in entries] == ["t1"]


@pytest.mark.asyncio
async def test_ledger_sum_matches_budget_spent(tmp_path: Path, budget_manager: BudgetManager, fake_usage) -> None:
    tracker = CostTracker(tmp_path / "costs.json", budget_manager, usage_client=fake_usage)
    await budget_manager.allocate("research", 50.0)
    await budget_manager.allocate("report", 50.0)
    for i, cost in enumerate([0.1, 0.2, 0.3, 1.4]):
        await tracker.record_task_cost(_entry("research", f"t{i}", cost))
    await tracker.record_task_cost(_entry("report", "other", 9.0))

    total = sum(entry.estimated_cost for entry in await tracker.get_entries("research"))
    budget = await budget_manager.get_budget("research")
    assert budget is not None
    assert total == pytest.approx(budget.spent)


@pytest.mark.asyncio
async def test_capture_and_record_cost_uses_usage(tmp_path: Path, budget_manager: BudgetManager, fake_usage) -> None:
    tracker = CostTracker(tmp_path / "costs.json", budget_manager, usage_client=fake_usage)
    await budget_manager.allocate("task:abc", 2.0)
    entry = await tracker.capture_and_record_cost(
        service_id="task:abc",
        task_id="report-x",
        task_label="report: x",
        iteration=1,
        session_id="sess-1",
    )
    assert entry.estimated_cost == 0.25
    assert entry.total_tokens == 150
    assert fake_usage.sessions == ["sess-1"]


@pytest.mark.asyncio
async def test_capture_records_zero_without_session(tmp_path: Path, budget_manager: BudgetManager, fake_usage) -> None:
    tracker = CostTracker(tmp_path / "costs.json", budget_manager, usage_client=fake_usage)
    await budget_manager.allocate("report", 1.0)
    entry = await tracker.capture_and_record_cost(
        service_id="report", task_id="t", task_label="l", iteration=1, session_id=""
    )
    assert entry.estimated_cost == 0.0
    assert fake_usage.sessions == []


@pytest.mark.asyncio
async def test_task_summaries_group_by_task(tmp_path: Path, budget_manager: BudgetManager, fake_usage) -> None:
    tracker = CostTracker(tmp_path / "costs.json", budget_manager, usage_client=fake_usage)
    await budget_manager.allocate("self-improve", 10.0)
    for iteration in (1, 2, 3):
        await tracker.record_task_cost(_entry("self-improve", "loop", 0.5, iteration))
    await tracker.record_task_cost(_entry("self-improve", "single", 1.0))

    summaries = {summary.task_id: summary for summary in await tracker.get_task_summaries("self-improve")}
    assert summaries["loop"].iteration_count == 3
    assert summaries["loop"].total_cost == pytest.approx(1.5)
    assert summaries["single"].iteration_count == 1


@pytest.mark.asyncio
async def test_service_report_period_and_budget(tmp_path: Path, budget_manager: BudgetManager, fake_usage) -> None:
    tracker = CostTracker(tmp_path / "costs.json", budget_manager, usage_client=fake_usage)
    await budget_manager.allocate("research", 4.0)
    await tracker.record_task_cost(_entry("research", "a", 1.0, timestamp="2026-01-01T00:00:00+00:00"))
    await tracker.record_task_cost(_entry("research", "b", 0.5, timestamp="2026-01-02T00:00:00+00:00"))

    report = await tracker.get_service_report("research")
    assert report.total_spent == pytest.approx(1.5)
    assert report.budget_allocated == 4.0
    assert report.budget_remaining == pytest.approx(2.5)
    assert report.period_start == "2026-01-01T00:00:00+00:00"
    assert report.period_end == "2026-01-02T00:00:00+00:00"


@pytest.mark.asyncio
async def test_service_report_without_entries(tmp_path: Path, budget_manager: BudgetManager, fake_usage) -> None:
    tracker = CostTracker(tmp_path / "costs.json", budget_manager, usage_client=fake_usage)
    report = await tracker.get_service_report("nothing")
    assert report.entries == []
    assert report.total_spent == 0.0
    assert report.budget_allocated == 0.0
    assert report.period_start == report.period_end
