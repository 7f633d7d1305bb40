"""Service-facing records: status, model choice, runs and logs."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ServiceStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    ERRORED = "errored"


class ClaudeModel(str, Enum):
    HAIKU = "haiku"
    SONNET = "sonnet"
    OPUS = "opus"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    ERRORED = "errored"


class ServiceConfig(BaseModel):
    """Static identity of a service."""

    id: str
    name: str
    description: str = ""
    budget: float = Field(default=0.0, ge=0.0)


class ServiceModelConfig(BaseModel):
    model: ClaudeModel = ClaudeModel.SONNET


class RunTaskResult(BaseModel):
    """One model invocation performed during a run."""

    task_id: str
    label: str
    iteration: int
    output: str
    tokens_used: int
    cost_estimate: float
    completed_at: str


class RunRecord(BaseModel):
    run_id: str
    cycle_number: int
    service_id: str
    model: ClaudeModel
    started_at: str
    completed_at: str | None = None
    status: RunStatus = RunStatus.RUNNING
    tasks: list[RunTaskResult] = Field(default_factory=list)
    total_tokens: int = 0
    total_cost: float = 0.0

    def record(self, result: RunTaskResult) -> None:
        self.tasks.append(result)
        self.total_tokens += result.tokens_used
        self.total_cost += result.cost_estimate

    def combined_output(self) -> str:
        """Non-empty sub-task outputs joined by a blank line."""
        return "\n\n".join(task.output for task in self.tasks if task.output.strip())


class TaskLog(BaseModel):
    task_id: str
    service_id: str
    iteration: int
    tokens_used: int
    cost_estimate: float
    message: str
    timestamp: str


class ServiceReport(BaseModel):
    service_id: str
    status: ServiceStatus
    total_tokens_used: int
    total_cost: float
    budget_remaining: float
    tasks_completed: int
    last_run: str | None = None
    logs: list[TaskLog] = Field(default_factory=list)
