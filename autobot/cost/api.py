"""Facade over the budget and cost ledgers used by the scheduler, HTTP API and CLI."""

from __future__ import annotations

from autobot.cost.budget import BudgetManager
from autobot.cost.models import Budget, CostReport, ServiceCostSummary, TaskCostSummary
from autobot.cost.tracker import CostTracker


class CostControlAPI:
    def __init__(self, budget_manager: BudgetManager, cost_tracker: CostTracker) -> None:
        self.budget_manager = budget_manager
        self.cost_tracker = cost_tracker

    async def get_budget(self, key: str) -> Budget | None:
        return await self.budget_manager.get_budget(key)

    async def get_all_budgets(self) -> list[Budget]:
        return await self.budget_manager.get_all_budgets()

    async def add_budget(self, key: str, amount: float) -> Budget:
        return await self.budget_manager.add_budget(key, amount)

    async def allocate_budget(self, key: str, amount: float, alert_threshold: float | None = None) -> Budget:
        if alert_threshold is None:
            return await self.budget_manager.allocate(key, amount)
        return await self.budget_manager.allocate(key, amount, alert_threshold)

    async def check_budget(self, key: str) -> tuple[bool, Budget]:
        return await self.budget_manager.check(key)

    async def get_service_report(self, service_id: str) -> CostReport:
        return await self.cost_tracker.get_service_report(service_id)

    async def get_task_details(self, service_id: str) -> list[TaskCostSummary]:
        return await self.cost_tracker.get_task_summaries(service_id)

    async def get_service_cost_summaries(self) -> list[ServiceCostSummary]:
        """Totals per service id across the whole cost log, in first-seen order."""
        grouped: dict[str, list] = {}
        for entry in await self.cost_tracker.get_entries():
            grouped.setdefault(entry.service_id, []).append(entry)
        return [
            ServiceCostSummary(
                service_id=service_id,
                service_name=service_id,
                total_cost=sum(entry.estimated_cost for entry in entries),
                total_tokens=sum(entry.total_tokens for entry in entries),
                task_count=len({entry.task_id for entry in entries}),
                iteration_count=len(entries),
            )
            for service_id, entries in grouped.items()
        ]
