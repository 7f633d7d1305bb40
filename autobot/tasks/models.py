"""Standalone task records and their per-service parameter variants."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from autobot.scheduler.models import IntervalScheduleConfig, ScheduleConfig
from autobot.services.models import ClaudeModel


class StandaloneTaskStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    COMPLETED = "completed"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (StandaloneTaskStatus.COMPLETED, StandaloneTaskStatus.ERRORED)


class TaskServiceType(str, Enum):
    REPORT = "report"
    RESEARCH = "research"
    CODE_TASK = "code-task"
    TOPIC_TRACKER = "topic-tracker"
    SELF_IMPROVE = "self-improve"


class SpendingLimit(BaseModel):
    """Rolling cap: at most ``max_per_window`` per ``window_hours`` since creation."""

    max_per_window: float = Field(gt=0)
    window_hours: float = Field(gt=0)


class _TaskParamsBase(BaseModel):
    spending_limit: SpendingLimit | None = None


class ReportTaskParams(_TaskParamsBase):
    service_type: Literal["report"] = "report"
    prompt: str = Field(min_length=1)


class ResearchTaskParams(_TaskParamsBase):
    service_type: Literal["research"] = "research"
    topic: str = Field(min_length=1)


class CodeTaskParams(_TaskParamsBase):
    service_type: Literal["code-task"] = "code-task"
    description: str = Field(min_length=1)
    target_path: str
    max_iterations: int = Field(default=5, ge=1)


class TopicTrackerTaskParams(_TaskParamsBase):
    service_type: Literal["topic-tracker"] = "topic-tracker"
    topic: str = Field(min_length=1)


class SelfImproveTaskParams(_TaskParamsBase):
    service_type: Literal["self-improve"] = "self-improve"
    max_iterations: int = Field(default=3, ge=1)


TaskParams = Annotated[
    ReportTaskParams | ResearchTaskParams | CodeTaskParams | TopicTrackerTaskParams | SelfImproveTaskParams,
    Field(discriminator="service_type"),
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StandaloneTask(BaseModel):
    task_id: str
    service_type: TaskServiceType
    params: TaskParams
    model: ClaudeModel = ClaudeModel.SONNET
    budget: float
    schedule: ScheduleConfig | None = None
    status: StandaloneTaskStatus = StandaloneTaskStatus.PENDING
    created_at: str = Field(default_factory=_now_iso)
    started_at: str | None = None
    completed_at: str | None = None
    cost_spent: float = 0.0
    cycles_completed: int = 0
    error: str | None = None
    output: str | None = None

    @property
    def budget_key(self) -> str:
        return f"task:{self.task_id}"

    @property
    def max_cycles(self) -> int | None:
        if isinstance(self.schedule, IntervalScheduleConfig):
            return self.schedule.max_cycles
        return None


class CreateTaskInput(BaseModel):
    service_type: TaskServiceType
    params: TaskParams
    model: ClaudeModel = ClaudeModel.SONNET
    budget: float = Field(gt=0)
    run_now: bool = True
    schedule: ScheduleConfig | None = None
