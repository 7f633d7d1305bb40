"""Base class shared by every model-driven service.

A service runs one or more prompts through the model runner. Each prompt is a
*sub-task*: it gets its own working directory under ``tasks/<service>/<id>``,
its session cost is recorded against a budget key, and its output is kept on
the current :class:`RunRecord`.

Services run in two modes:

* scheduled mode via :meth:`BaseService.start`, charging the service's own
  budget and appending the run to ``<service>-runs.json``;
* standalone mode via :meth:`BaseService.run_standalone`, charging the
  caller-supplied budget key (``task:<id>``) and returning the run record to
  the task executor.
"""

from __future__ import annotations

import logging
import re
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

from autobot.cost.models import CostEntry
from autobot.cost.tracker import CostTracker
from autobot.log import TaskLogWriter
from autobot.persistence import JsonStore
from autobot.runner import ClaudeRunner
from autobot.services.models import (
    ClaudeModel,
    RunRecord,
    RunStatus,
    RunTaskResult,
    ServiceConfig,
    ServiceModelConfig,
    ServiceReport,
    ServiceStatus,
    TaskLog,
)

logger = logging.getLogger(__name__)


class ProgressEventType(str, Enum):
    PROMPT = "prompt"
    CHUNK = "chunk"
    STEP = "step"
    COST = "cost"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class TaskProgressEvent:
    type: ProgressEventType
    prompt: str | None = None
    model: str | None = None
    text: str | None = None
    step: dict[str, Any] | None = None
    cost: float | None = None
    output: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {key: value for key, value in self.__dict__.items() if value is not None}
        data["type"] = self.type.value
        return data


ProgressCallback = Callable[[TaskProgressEvent], None]


@dataclass
class StandaloneContext:
    model: ClaudeModel
    budget_key: str
    run_record: RunRecord
    on_progress: ProgressCallback | None = None


@dataclass(frozen=True)
class SubTaskOutcome:
    task_id: str
    output: str
    cost_entry: CostEntry


@dataclass
class _Counters:
    tasks_completed: int = 0
    last_run: str | None = None
    logs: list[TaskLog] = field(default_factory=list)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def slugify(text: str, limit: int = 40) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")[:limit].rstrip("-")


def generate_task_id(service_id: str, label: str) -> str:
    """``<service>-<label-slug>-<YYYYMMDDTHHMMSS>``."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    return f"{service_id}-{slugify(label)}-{stamp}"


class BaseService(ABC):
    """Common run bookkeeping for services; subclasses define prompts."""

    config: ClassVar[ServiceConfig]
    default_max_turns: ClassVar[int] = 5

    def __init__(
        self,
        cost_tracker: CostTracker,
        runner: ClaudeRunner,
        *,
        data_dir: str | Path = "data",
        tasks_dir: str | Path = "tasks",
        task_log: TaskLogWriter | None = None,
    ) -> None:
        self.cost_tracker = cost_tracker
        self.runner = runner
        self.data_dir = Path(data_dir)
        self.tasks_dir = Path(tasks_dir)
        self.task_log = task_log
        self.logger = logging.getLogger(f"autobot.services.{self.service_id}")
        self._status = ServiceStatus.IDLE
        self._model = ClaudeModel.SONNET
        self._cycle_count = 0
        self._current_run: RunRecord | None = None
        self._counters = _Counters()
        self._config_store: JsonStore[dict] = JsonStore(
            self.data_dir / f"service-config-{self.service_id}.json",
            ServiceModelConfig().model_dump(mode="json"),
        )
        self._runs_store: JsonStore[list[dict]] = JsonStore(self.data_dir / f"{self.service_id}-runs.json", [])

    @property
    def service_id(self) -> str:
        return self.config.id

    @abstractmethod
    async def start(self) -> None:
        """Run one scheduled cycle."""

    # -- model selection -------------------------------------------------

    async def load_service_config(self) -> None:
        stored = ServiceModelConfig.model_validate(await self._config_store.load())
        self._model = stored.model
        self._cycle_count = len(await self._runs_store.load())
        self.logger.info("Loaded config: model=%s, cycles=%d", self._model.value, self._cycle_count)

    async def save_service_config(self) -> None:
        await self._config_store.save(self.get_service_config().model_dump(mode="json"))

    def get_service_config(self) -> ServiceModelConfig:
        return ServiceModelConfig(model=self._model)

    async def set_model(self, model: ClaudeModel | str) -> None:
        self._model = ClaudeModel(model)
        await self.save_service_config()

    # -- run tracking ----------------------------------------------------

    async def begin_run(self) -> RunRecord:
        self._cycle_count += 1
        self._current_run = RunRecord(
            run_id=str(uuid.uuid4()),
            cycle_number=self._cycle_count,
            service_id=self.service_id,
            model=self._model,
            started_at=_now_iso(),
        )
        return self._current_run

    async def complete_run(self, status: RunStatus = RunStatus.COMPLETED) -> None:
        run = self._current_run
        if run is None:
            return
        run.status = status
        run.completed_at = _now_iso()
        runs = await self._runs_store.load()
        runs.append(run.model_dump(mode="json"))
        await self._runs_store.save(runs)
        self._current_run = None

    async def get_runs(self) -> list[RunRecord]:
        return [RunRecord.model_validate(row) for row in await self._runs_store.load()]

    async def get_run(self, run_id: str) -> RunRecord | None:
        for run in await self.get_runs():
            if run.run_id == run_id:
                return run
        return None

    async def _run_cycle(self, body: Callable[[], Any]) -> None:
        """Wrap one scheduled cycle with run bookkeeping and status changes."""
        self._status = ServiceStatus.RUNNING
        await self.begin_run()
        try:
            await body()
        except Exception:
            await self.complete_run(RunStatus.ERRORED)
            self._status = ServiceStatus.ERRORED
            raise
        await self.complete_run(RunStatus.COMPLETED)
        if self._status == ServiceStatus.RUNNING:
            self._status = ServiceStatus.IDLE

    # -- sub-task execution ----------------------------------------------

    async def run_task(
        self,
        *,
        label: str,
        prompt: str,
        max_turns: int | None = None,
        iteration: int = 1,
        existing_task_id: str | None = None,
        model_override: ClaudeModel | None = None,
        service_id_override: str | None = None,
        run: RunRecord | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SubTaskOutcome:
        """Run one prompt, record its cost and attach its output to ``run``."""
        task_id = existing_task_id or generate_task_id(self.service_id, label)
        task_dir = self.tasks_dir / self.service_id / task_id
        task_dir.mkdir(parents=True, exist_ok=True)
        model = model_override or self._model
        run = run if run is not None else self._current_run

        self.logger.info("Starting task: %s (task_id=%s, iteration=%d)", label, task_id, iteration)
        if on_progress is not None:
            on_progress(TaskProgressEvent(type=ProgressEventType.PROMPT, prompt=prompt, model=model.value))

        result = await self.runner.run(
            prompt,
            task_dir,
            max_turns=max_turns or self.default_max_turns,
            model=model.value,
            on_stdout_chunk=(
                (lambda text: on_progress(TaskProgressEvent(type=ProgressEventType.CHUNK, text=text)))
                if on_progress is not None
                else None
            ),
        )

        cost_entry = await self.cost_tracker.capture_and_record_cost(
            service_id=service_id_override or self.service_id,
            task_id=task_id,
            task_label=f"{self.service_id}: {label}",
            iteration=iteration,
            session_id=result.session_id,
        )
        if on_progress is not None:
            on_progress(TaskProgressEvent(type=ProgressEventType.COST, cost=cost_entry.estimated_cost))

        finished_at = _now_iso()
        log_entry = TaskLog(
            task_id=task_id,
            service_id=self.service_id,
            iteration=iteration,
            tokens_used=cost_entry.total_tokens,
            cost_estimate=cost_entry.estimated_cost,
            message=f"Completed: {label}",
            timestamp=finished_at,
        )
        self._counters.logs.append(log_entry)
        self._counters.tasks_completed += 1
        self._counters.last_run = finished_at
        if self.task_log is not None:
            self.task_log.write(
                self.service_id,
                {
                    "taskId": task_id,
                    "serviceId": self.service_id,
                    "iteration": iteration,
                    "tokensUsed": log_entry.tokens_used,
                    "costEstimate": log_entry.cost_estimate,
                    "message": log_entry.message,
                    "timestamp": finished_at,
                },
            )

        if result.stdout:
            (task_dir / "output.md").write_text(result.stdout, encoding="utf-8")

        if run is not None:
            run.record(
                RunTaskResult(
                    task_id=task_id,
                    label=label,
                    iteration=iteration,
                    output=result.stdout,
                    tokens_used=cost_entry.total_tokens,
                    cost_estimate=cost_entry.estimated_cost,
                    completed_at=finished_at,
                )
            )
        if on_progress is not None:
            on_progress(
                TaskProgressEvent(
                    type=ProgressEventType.STEP,
                    step={"index": len(run.tasks) if run else 1, "label": label, "status": "completed"},
                )
            )
        return SubTaskOutcome(task_id=task_id, output=result.stdout, cost_entry=cost_entry)

    # -- lifecycle -------------------------------------------------------

    async def stop(self) -> None:
        self._status = ServiceStatus.STOPPED

    async def pause(self) -> None:
        self._status = ServiceStatus.PAUSED

    async def resume(self) -> None:
        self._status = ServiceStatus.IDLE

    async def status(self) -> ServiceStatus:
        return self._status

    def is_running(self) -> bool:
        return self._status == ServiceStatus.RUNNING

    async def logs(self, limit: int | None = None) -> list[TaskLog]:
        if limit:
            return self._counters.logs[-limit:]
        return list(self._counters.logs)

    async def report(self) -> ServiceReport:
        cost_report = await self.cost_tracker.get_service_report(self.service_id)
        return ServiceReport(
            service_id=self.service_id,
            status=self._status,
            total_tokens_used=sum(log.tokens_used for log in self._counters.logs),
            total_cost=cost_report.total_spent,
            budget_remaining=cost_report.budget_remaining,
            tasks_completed=self._counters.tasks_completed,
            last_run=self._counters.last_run,
            logs=self._counters.logs[-50:],
        )

    # -- standalone ------------------------------------------------------

    async def run_standalone(
        self,
        params: Any,
        model: ClaudeModel | str,
        budget_key: str,
        on_progress: ProgressCallback | None = None,
    ) -> RunRecord:
        """Run task ``params`` once, charging ``budget_key``.

        The returned record holds every sub-task output. Exceptions from the
        service propagate after the record is marked errored.
        """
        run = RunRecord(
            run_id=str(uuid.uuid4()),
            cycle_number=0,
            service_id=budget_key,
            model=ClaudeModel(model),
            started_at=_now_iso(),
        )
        ctx = StandaloneContext(model=run.model, budget_key=budget_key, run_record=run, on_progress=on_progress)
        try:
            await self.execute_standalone(params, ctx)
            run.status = RunStatus.COMPLETED
        except Exception:
            run.status = RunStatus.ERRORED
            raise
        finally:
            run.completed_at = _now_iso()
        return run

    async def execute_standalone(self, params: Any, ctx: StandaloneContext) -> None:
        raise NotImplementedError(f"execute_standalone() not implemented for {self.service_id}")

    async def _standalone_task(self, ctx: StandaloneContext, **kwargs: Any) -> SubTaskOutcome:
        return await self.run_task(
            model_override=ctx.model,
            service_id_override=ctx.budget_key,
            run=ctx.run_record,
            on_progress=ctx.on_progress,
            **kwargs,
        )
