"""Wiring of the autobot runtime from configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from autobot.config import AutobotConfig
from autobot.cost import BudgetManager, CcusageClient, CostControlAPI, CostTracker
from autobot.log import TaskLogWriter
from autobot.messaging import Message, MessageBus, MessageType
from autobot.runner import ClaudeRunner
from autobot.scheduler import SchedulerAPI, SchedulingEngine, ServiceRegistry
from autobot.scheduler.executor import TaskExecutor
from autobot.services import ALL_SERVICES, BaseService
from autobot.tasks import TaskStore

logger = logging.getLogger(__name__)


class Autobot:
    """Owns one instance of every collaborator and their lifecycle."""

    def __init__(
        self,
        config: AutobotConfig,
        *,
        runner: ClaudeRunner | None = None,
        usage_client: CcusageClient | None = None,
        services: list[BaseService] | None = None,
    ) -> None:
        self.config = config
        data_dir = Path(config.storage.data_dir)
        self.bus = MessageBus()
        self.budget_manager = BudgetManager(data_dir / "budgets.json", self.bus)
        self.cost_tracker = CostTracker(
            data_dir / "cost-entries.json",
            self.budget_manager,
            self.bus,
            usage_client or CcusageClient(config.runner.ccusage_bin),
        )
        self.cost_api = CostControlAPI(self.budget_manager, self.cost_tracker)
        self.registry = ServiceRegistry()
        self.engine = SchedulingEngine(self.registry, self.bus, self.cost_api, data_dir / "scheduler-state.json")
        self.task_store = TaskStore(data_dir / "standalone-tasks.json")
        self.executor = TaskExecutor(
            self.task_store,
            self.registry,
            self.budget_manager,
            self.engine,
            max_slots=config.scheduler.max_slots,
        )
        self.scheduler_api = SchedulerAPI(self.engine, self.registry)
        self.task_log = TaskLogWriter(config.logging.dir)
        self.runner = runner or ClaudeRunner(
            config.runner.claude_bin,
            session_flush_seconds=config.runner.session_flush_seconds,
        )
        for service in services if services is not None else self._default_services():
            self.registry.register(service)
        self.bus.subscribe(MessageType.BUDGET_EXHAUSTED, self._on_budget_exhausted)
        self.bus.subscribe(MessageType.COST_RECORDED, self._on_cost_recorded)
        self._started = False

    def _default_services(self) -> list[BaseService]:
        return [
            service_cls(
                self.cost_tracker,
                self.runner,
                data_dir=self.config.storage.data_dir,
                tasks_dir=self.config.storage.tasks_dir,
                task_log=self.task_log,
            )
            for service_cls in ALL_SERVICES
        ]

    async def _on_budget_exhausted(self, message: Message) -> None:
        # Task budgets are gated by the executor; only registered services are paused.
        if not self.registry.has(message.service_id):
            return
        logger.warning("Budget exhausted for %s, pausing service", message.service_id)
        await self.engine.pause_service(message.service_id)

    async def _on_cost_recorded(self, message: Message) -> None:
        logger.debug(
            "Cost recorded for %s: $%.4f",
            message.service_id,
            float(message.payload.get("estimated_cost", 0.0)),
        )

    async def start(self) -> None:
        """Restore persisted state: service model choices, service schedules and task schedules."""
        if self._started:
            return
        for service in self.registry.list():
            await service.load_service_config()
        await self.engine.start()
        await self.executor.reload_scheduled_tasks()
        self._started = True
        logger.info("autobot started with %d service(s)", len(self.registry.list()))

    async def shutdown(self) -> None:
        if not self._started:
            return
        await self.engine.shutdown()
        await self.executor.shutdown()
        await self.bus.drain()
        self._started = False
        logger.info("autobot stopped")
