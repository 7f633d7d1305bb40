"""Cost ledger: append-only cost entries and the reports derived from them."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from autobot.cost.budget import BudgetManager
from autobot.cost.models import CostEntry, CostReport, TaskCostSummary
from autobot.cost.usage import CcusageClient
from autobot.messaging import Message, MessageBus, MessageType
from autobot.persistence import JsonStore

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CostTracker:
    """Record realized spend and deduct it from the matching budget."""

    def __init__(
        self,
        store_path: str | Path,
        budget_manager: BudgetManager,
        bus: MessageBus | None = None,
        usage_client: CcusageClient | None = None,
    ) -> None:
        self._store: JsonStore[list[dict]] = JsonStore(store_path, [])
        self._budgets = budget_manager
        self._bus = bus
        self._usage = usage_client or CcusageClient()
        self._lock = asyncio.Lock()

    async def record_task_cost(self, entry: CostEntry) -> None:
        """Append ``entry``, then deduct it, then announce it.

        The entry is saved before the deduction runs, so a failed deduction
        leaves history intact and the error propagates to the caller.
        """
        async with self._lock:
            rows = await self._store.load()
            rows.append(entry.to_dict())
            await self._store.save(rows)

        await self._budgets.deduct(entry.service_id, entry.estimated_cost)
        logger.info(
            "Recorded cost for %s/%s: $%.4f",
            entry.service_id,
            entry.task_id,
            entry.estimated_cost,
        )
        if self._bus is not None:
            await self._bus.publish(
                Message(type=MessageType.COST_RECORDED, service_id=entry.service_id, payload=entry.to_dict())
            )

    async def capture_and_record_cost(
        self,
        *,
        service_id: str,
        task_id: str,
        task_label: str,
        iteration: int,
        session_id: str,
    ) -> CostEntry:
        """Look up usage for ``session_id`` and record it; zeros when unknown."""
        usage = await self._usage.get_session_cost(session_id) if session_id else None
        if usage is None:
            logger.warning("No usage data for session '%s' (task %s); recording zero cost", session_id, task_id)
        entry = CostEntry(
            service_id=service_id,
            task_id=task_id,
            task_label=task_label,
            session_id=session_id,
            iteration=iteration,
            tokens_input=usage.input_tokens if usage else 0,
            tokens_output=usage.output_tokens if usage else 0,
            cache_creation_tokens=usage.cache_creation_tokens if usage else 0,
            cache_read_tokens=usage.cache_read_tokens if usage else 0,
            estimated_cost=usage.total_cost if usage else 0.0,
            timestamp=_now_iso(),
        )
        await self.record_task_cost(entry)
        return entry

    async def get_entries(self, service_id: str | None = None) -> list[CostEntry]:
        rows = await self._store.load()
        entries = [CostEntry.from_dict(row) for row in rows if isinstance(row, dict)]
        if service_id is None:
            return entries
        return [entry for entry in entries if entry.service_id == service_id]

    async def get_task_summaries(self, service_id: str | None = None) -> list[TaskCostSummary]:
        summaries: dict[str, TaskCostSummary] = {}
        for entry in await self.get_entries(service_id):
            summary = summaries.get(entry.task_id)
            if summary is None:
                summary = TaskCostSummary(
                    task_id=entry.task_id,
                    task_label=entry.task_label,
                    service_id=entry.service_id,
                )
                summaries[entry.task_id] = summary
            summary.total_cost += entry.estimated_cost
            summary.iteration_count += 1
            summary.entries.append(entry)
        return list(summaries.values())

    async def get_service_report(self, service_id: str) -> CostReport:
        entries = await self.get_entries(service_id)
        budget = await self._budgets.get_budget(service_id)
        now = _now_iso()
        return CostReport(
            service_id=service_id,
            total_spent=sum(entry.estimated_cost for entry in entries),
            budget_allocated=budget.allocated if budget else 0.0,
            budget_remaining=budget.remaining if budget else 0.0,
            entries=entries,
            period_start=entries[0].timestamp if entries else now,
            period_end=entries[-1].timestamp if entries else now,
        )
