"""Task executor: creation, scheduling and execution of standalone tasks.

Task lifecycle::

    pending ──► running ──► completed
    scheduled ─┘       └──► errored

Each task owns the budget key ``task:<task_id>``. Recurring schedules are
registered on the scheduling engine under derived keys:

* ``task:<task_id>:slot-<i>`` for each weekly slot of a ``scheduled`` config
* ``task:<task_id>:interval`` for an ``interval`` config

Execution is fire-and-forget: results land in the task store and callers
poll it. Errors raised during a run are recorded on the task, never
re-raised into the scheduler.
"""

from __future__ import annotations

import asyncio
import logging
import math
import uuid
from datetime import datetime, timezone

from autobot.cost.budget import BudgetManager
from autobot.scheduler.engine import SchedulingEngine
from autobot.scheduler.models import (
    IntervalScheduleConfig,
    OnceScheduleConfig,
    SlotScheduleConfig,
)
from autobot.scheduler.registry import ServiceRegistry
from autobot.services.base import ProgressCallback, ProgressEventType, TaskProgressEvent
from autobot.tasks.models import (
    CreateTaskInput,
    SpendingLimit,
    StandaloneTask,
    StandaloneTaskStatus,
    TaskServiceType,
)
from autobot.tasks.store import TaskStore

logger = logging.getLogger(__name__)

SERVICE_TYPE_TO_ID: dict[TaskServiceType, str] = {
    TaskServiceType.REPORT: "report",
    TaskServiceType.RESEARCH: "research",
    TaskServiceType.CODE_TASK: "code-task",
    TaskServiceType.TOPIC_TRACKER: "topic-tracker",
    TaskServiceType.SELF_IMPROVE: "self-improve",
}

DEFAULT_MAX_SLOTS = 20


def budget_key_for(task_id: str) -> str:
    return f"task:{task_id}"


def slot_key(task_id: str, index: int) -> str:
    return f"task:{task_id}:slot-{index}"


def interval_key(task_id: str) -> str:
    return f"task:{task_id}:interval"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def allowed_windows(created_at: datetime, window_hours: float, now: datetime | None = None) -> int:
    """Number of spending windows opened since ``created_at`` (at least one)."""
    now = now or datetime.now(timezone.utc)
    hours_elapsed = (now - created_at).total_seconds() / 3600
    return max(1, math.ceil(hours_elapsed / window_hours))


def within_spending_limit(
    limit: SpendingLimit,
    spent: float,
    created_at: datetime,
    now: datetime | None = None,
) -> bool:
    """True while cumulative ``spent`` is below the cap of the windows opened so far."""
    windows = allowed_windows(created_at, limit.window_hours, now)
    return spent < windows * limit.max_per_window


class TaskExecutor:
    """Owns standalone tasks from creation to a terminal state."""

    def __init__(
        self,
        task_store: TaskStore,
        registry: ServiceRegistry,
        budget_manager: BudgetManager,
        engine: SchedulingEngine,
        *,
        max_slots: int = DEFAULT_MAX_SLOTS,
    ) -> None:
        self._tasks = task_store
        self._registry = registry
        self._budgets = budget_manager
        self._engine = engine
        self._max_slots = max_slots
        self._progress: dict[str, ProgressCallback] = {}
        self._running: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def _create(self, task_input: CreateTaskInput, status: StandaloneTaskStatus) -> StandaloneTask:
        if task_input.params.service_type != task_input.service_type.value:
            raise ValueError(
                f"params are for '{task_input.params.service_type}', task is '{task_input.service_type.value}'"
            )
        task = StandaloneTask(
            task_id=str(uuid.uuid4()),
            service_type=task_input.service_type,
            params=task_input.params,
            model=task_input.model,
            budget=task_input.budget,
            schedule=task_input.schedule,
            status=status,
        )
        await self._budgets.allocate(task.budget_key, task_input.budget)
        await self._tasks.create(task)
        logger.info("Created task %s (%s, budget $%.2f)", task.task_id, task.service_type.value, task.budget)
        return task

    async def create_and_run(
        self,
        task_input: CreateTaskInput,
        on_progress: ProgressCallback | None = None,
    ) -> StandaloneTask:
        """Create a task and start its first run in the background.

        Returns the descriptor as persisted before the run starts.
        """
        task = await self._create(task_input, StandaloneTaskStatus.PENDING)
        if on_progress is not None:
            self.register_progress(task.task_id, on_progress)
        if task.schedule is not None:
            self._schedule_task(task)
        self._spawn(task.task_id, self._run_once_then_settle(task.task_id, task.budget_key))
        return task

    async def create_and_schedule(
        self,
        task_input: CreateTaskInput,
        schedule: SlotScheduleConfig | IntervalScheduleConfig | None = None,
    ) -> StandaloneTask:
        """Create a task whose first run is left to its schedule.

        ``schedule`` overrides ``task_input.schedule`` when given.
        """
        if schedule is not None:
            task_input = task_input.model_copy(update={"schedule": schedule})
        if task_input.schedule is None or isinstance(task_input.schedule, OnceScheduleConfig):
            raise ValueError("create_and_schedule requires a 'scheduled' or 'interval' schedule")
        task = await self._create(task_input, StandaloneTaskStatus.SCHEDULED)
        self._schedule_task(task)
        return task

    # ------------------------------------------------------------------
    # Queries and removal
    # ------------------------------------------------------------------

    async def list_tasks(self, service_type: str | None = None) -> list[StandaloneTask]:
        if service_type:
            return await self._tasks.get_by_service(service_type)
        return await self._tasks.get_all()

    async def get_task(self, task_id: str) -> StandaloneTask | None:
        return await self._tasks.get_by_id(task_id)

    async def delete_task(self, task_id: str) -> None:
        """Unschedule every derived key the task could have, then drop the record.

        A run already in flight is not interrupted; its final update becomes
        a no-op once the record is gone.
        """
        for index in range(self._max_slots):
            self._engine.unschedule_callback(slot_key(task_id, index))
        self._engine.unschedule_callback(interval_key(task_id))
        self._engine.unschedule_callback(budget_key_for(task_id))
        await self._tasks.delete(task_id)
        self.unregister_progress(task_id)
        logger.info("Deleted task %s", task_id)

    async def reload_scheduled_tasks(self) -> int:
        """Re-register schedules of non-terminal tasks after a restart.

        Budgets are left as persisted and nothing runs immediately.
        """
        count = 0
        for task in await self._tasks.get_all():
            if task.schedule is None or task.status.is_terminal:
                continue
            if self._schedule_task(task):
                count += 1
        logger.info("Reloaded scheduled tasks: %d", count)
        return count

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def register_progress(self, task_id: str, callback: ProgressCallback) -> None:
        self._progress[task_id] = callback

    def unregister_progress(self, task_id: str) -> None:
        self._progress.pop(task_id, None)

    def _emit_terminal(self, task_id: str, event: TaskProgressEvent) -> None:
        callback = self._progress.pop(task_id, None)
        if callback is None:
            return
        try:
            callback(event)
        except Exception as exc:
            logger.exception("Progress callback failed for task %s: %s", task_id, exc)

    def _forward_progress(self, task_id: str) -> ProgressCallback:
        def forward(event: TaskProgressEvent) -> None:
            callback = self._progress.get(task_id)
            if callback is None or event.type in (ProgressEventType.DONE, ProgressEventType.ERROR):
                return
            try:
                callback(event)
            except Exception as exc:
                logger.exception("Progress callback failed for task %s: %s", task_id, exc)

        return forward

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _schedule_task(self, task: StandaloneTask) -> bool:
        schedule = task.schedule
        task_id = task.task_id
        if isinstance(schedule, SlotScheduleConfig):
            if len(schedule.slots) > self._max_slots:
                logger.warning("Task %s has %d slots; only %d are scheduled", task_id, len(schedule.slots), self._max_slots)
            for index, slot in enumerate(schedule.slots[: self._max_slots]):
                self._engine.schedule_callback(
                    slot_key(task_id, index),
                    slot.to_schedule(),
                    lambda: self.run_scheduled_cycle(task_id, count_cycle=False),
                )
            return True
        if isinstance(schedule, IntervalScheduleConfig):
            self._engine.schedule_callback(
                interval_key(task_id),
                schedule.to_schedule(),
                lambda: self.run_scheduled_cycle(task_id, count_cycle=True),
            )
            return True
        return False

    async def run_scheduled_cycle(self, task_id: str, *, count_cycle: bool) -> None:
        task = await self._tasks.get_by_id(task_id)
        if task is None:
            logger.info("Task %s no longer exists; skipping scheduled run", task_id)
            return

        max_cycles = task.max_cycles
        if count_cycle and max_cycles is not None and task.cycles_completed >= max_cycles:
            logger.info("Task %s reached max cycles (%d); completing", task_id, max_cycles)
            self._engine.unschedule_callback(interval_key(task_id))
            await self._tasks.update(task_id, status=StandaloneTaskStatus.COMPLETED, completed_at=_now_iso())
            return

        limit = task.params.spending_limit
        if limit is not None:
            budget = await self._budgets.get_budget(task.budget_key)
            spent = budget.spent if budget else 0.0
            created_at = datetime.fromisoformat(task.created_at)
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            if not within_spending_limit(limit, spent, created_at):
                logger.debug("Task %s over spending limit ($%.2f spent); skipping cycle", task_id, spent)
                return

        await self.execute_task(task_id, task.budget_key)
        if count_cycle:
            await self._tasks.increment_cycles(task_id)
        await self._settle_recurring(task_id)

    async def _run_once_then_settle(self, task_id: str, budget_key: str) -> None:
        await self.execute_task(task_id, budget_key)
        await self._settle_recurring(task_id)

    def _has_live_schedule(self, task_id: str) -> bool:
        if self._engine.is_scheduled(interval_key(task_id)):
            return True
        return any(self._engine.is_scheduled(slot_key(task_id, i)) for i in range(self._max_slots))

    async def _settle_recurring(self, task_id: str) -> None:
        """Return a completed run of a still-scheduled task to ``scheduled``.

        Output, cost and error fields of the finished run are kept.
        """
        task = await self._tasks.get_by_id(task_id)
        if task is None or task.status != StandaloneTaskStatus.COMPLETED:
            return
        if self._has_live_schedule(task_id):
            await self._tasks.update(task_id, status=StandaloneTaskStatus.SCHEDULED)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _spawn(self, task_id: str, coro) -> None:  # type: ignore[no-untyped-def]
        job = asyncio.create_task(coro, name=f"task-run:{task_id}")
        self._running.add(job)
        job.add_done_callback(self._running.discard)
        job.add_done_callback(lambda done: self._log_crash(task_id, done))

    @staticmethod
    def _log_crash(task_id: str, job: asyncio.Task[None]) -> None:
        if not job.cancelled() and job.exception() is not None:
            logger.error("Task execution failed: %s: %s", task_id, job.exception())

    async def execute_task(self, task_id: str, budget_key: str) -> None:
        """Run one execution of ``task_id`` and record the outcome on the task."""
        task = await self._tasks.get_by_id(task_id)
        if task is None:
            logger.error("Task not found: %s", task_id)
            return

        service_id = SERVICE_TYPE_TO_ID[task.service_type]
        service = self._registry.get(service_id)
        if service is None:
            message = f"Service not found: {service_id}"
            await self._tasks.update(task_id, status=StandaloneTaskStatus.ERRORED, error=message)
            self._emit_terminal(task_id, TaskProgressEvent(type=ProgressEventType.ERROR, error=message))
            return

        await self._tasks.update(task_id, status=StandaloneTaskStatus.RUNNING, started_at=_now_iso())
        try:
            run = await service.run_standalone(task.params, task.model, budget_key, self._forward_progress(task_id))
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            cost_spent = await self._spent(budget_key)
            await self._tasks.update(
                task_id,
                status=StandaloneTaskStatus.ERRORED,
                completed_at=_now_iso(),
                cost_spent=cost_spent,
                error=message,
            )
            logger.error("Task errored: %s: %s", task_id, message)
            self._emit_terminal(task_id, TaskProgressEvent(type=ProgressEventType.ERROR, error=message))
            return

        cost_spent = await self._spent(budget_key)
        output = run.combined_output()
        await self._tasks.update(
            task_id,
            status=StandaloneTaskStatus.COMPLETED,
            completed_at=_now_iso(),
            cost_spent=cost_spent,
            output=output,
            error=None,
        )
        logger.info(
            "Task completed: %s (%s, cost $%.4f, tokens %d)",
            task_id,
            task.service_type.value,
            cost_spent,
            run.total_tokens,
        )
        self._emit_terminal(task_id, TaskProgressEvent(type=ProgressEventType.DONE, output=output, cost=cost_spent))

    async def _spent(self, budget_key: str) -> float:
        budget = await self._budgets.get_budget(budget_key)
        return budget.spent if budget else 0.0

    async def shutdown(self) -> None:
        """Wait for runs started by this executor to finish."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
