"""Budget ledger: per-key allocation, deduction and exhaustion alerts."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from autobot.cost.models import DEFAULT_ALERT_THRESHOLD, Budget
from autobot.errors import BudgetNotFoundError
from autobot.messaging import Message, MessageBus, MessageType
from autobot.persistence import JsonStore

logger = logging.getLogger(__name__)


class BudgetManager:
    """Persisted map of budget key to :class:`Budget`.

    Every mutation is a load-modify-save of the whole document and runs under
    one lock, so concurrent deductions against a key are never lost.
    """

    def __init__(self, store_path: str | Path, bus: MessageBus | None = None) -> None:
        self._store: JsonStore[dict[str, dict]] = JsonStore(store_path, {})
        self._bus = bus
        self._lock = asyncio.Lock()

    async def _load(self) -> dict[str, Budget]:
        raw = await self._store.load()
        budgets: dict[str, Budget] = {}
        if not isinstance(raw, dict):
            return budgets
        for key, row in raw.items():
            if isinstance(row, dict):
                budgets[key] = Budget.from_dict({**row, "key": key})
        return budgets

    async def _save(self, budgets: dict[str, Budget]) -> None:
        await self._store.save({key: budget.to_dict() for key, budget in budgets.items()})

    async def allocate(
        self,
        key: str,
        amount: float,
        alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
    ) -> Budget:
        """Set the allocation for ``key``, keeping whatever was already spent."""
        if amount < 0:
            raise ValueError("amount must be >= 0")
        if not 0 <= alert_threshold <= 1:
            raise ValueError("alert_threshold must be within [0, 1]")
        async with self._lock:
            budgets = await self._load()
            previous = budgets.get(key)
            budget = Budget(
                key=key,
                allocated=amount,
                spent=previous.spent if previous else 0.0,
                alert_threshold=alert_threshold,
            ).recompute()
            budgets[key] = budget
            await self._save(budgets)
        logger.info("Budget allocated for %s: $%.2f (spent $%.2f)", key, amount, budget.spent)
        return budget

    async def add_budget(self, key: str, amount: float) -> Budget:
        """Top up ``key`` by ``amount``, allocating fresh when no budget exists."""
        if amount < 0:
            raise ValueError("amount must be >= 0")
        async with self._lock:
            budgets = await self._load()
            budget = budgets.get(key)
            if budget is None:
                budget = Budget(key=key, allocated=amount)
            else:
                budget.allocated += amount
            budget.recompute()
            budgets[key] = budget
            await self._save(budgets)
        logger.info("Budget added for %s: +$%.2f (remaining $%.2f)", key, amount, budget.remaining)
        await self._publish(MessageType.BUDGET_ADDED, key, {"amount": amount, "budget": budget.to_dict()})
        return budget

    async def check(self, key: str) -> tuple[bool, Budget]:
        budget = await self.get_budget(key)
        if budget is None:
            return False, Budget.missing(key)
        return (not budget.is_exhausted and budget.remaining > 0), budget

    async def deduct(self, key: str, amount: float) -> Budget:
        """Record ``amount`` as spent against ``key``.

        Raises:
            BudgetNotFoundError: ``key`` was never allocated.
        """
        async with self._lock:
            budgets = await self._load()
            budget = budgets.get(key)
            if budget is None:
                raise BudgetNotFoundError(key)
            budget.spent += amount
            budget.recompute()
            await self._save(budgets)
        if budget.remaining <= budget.alert_floor:
            # Fires on every deduction below the floor, not only the first crossing.
            logger.warning(
                "Budget alert for %s: remaining $%.2f of $%.2f",
                key,
                budget.remaining,
                budget.allocated,
            )
            await self._publish(MessageType.BUDGET_EXHAUSTED, key, {"budget": budget.to_dict()})
        return budget

    async def get_budget(self, key: str) -> Budget | None:
        budgets = await self._load()
        return budgets.get(key)

    async def get_all_budgets(self) -> list[Budget]:
        budgets = await self._load()
        return list(budgets.values())

    async def _publish(self, message_type: MessageType, key: str, payload: dict) -> None:
        if self._bus is None:
            return
        await self._bus.publish(Message(type=message_type, service_id=key, payload=payload))
