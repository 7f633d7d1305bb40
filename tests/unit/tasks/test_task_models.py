"""Unit tests for standalone task models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from autobot.scheduler import IntervalScheduleConfig, SlotScheduleConfig
from autobot.tasks import (
    CodeTaskParams,
    CreateTaskInput,
    StandaloneTask,
    StandaloneTaskStatus,
    TaskServiceType,
    TopicTrackerTaskParams,
)


def test_params_discriminated_by_service_type() -> None:
    task_input = CreateTaskInput.model_validate(
        {
            "service_type": "code-task",
            "params": {"service_type": "code-task", "description": "fix bug", "target_path": "src/"},
            "budget": 3,
        }
    )
    assert isinstance(task_input.params, CodeTaskParams)
    assert task_input.params.max_iterations == 5
    assert task_input.run_now is True


def test_budget_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        CreateTaskInput(service_type=TaskServiceType.REPORT, params={"service_type": "report", "prompt": "x"}, budget=0)


def test_unknown_service_type_rejected() -> None:
    with pytest.raises(ValidationError):
        CreateTaskInput.model_validate(
            {"service_type": "poetry", "params": {"service_type": "poetry"}, "budget": 1}
        )


def test_spending_limit_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        TopicTrackerTaskParams(topic="rust", spending_limit={"max_per_window": 0, "window_hours": 1})


def test_schedule_union_and_task_properties() -> None:
    task = StandaloneTask.model_validate(
        {
            "task_id": "t1",
            "service_type": "topic-tracker",
            "params": {"service_type": "topic-tracker", "topic": "rust"},
            "budget": 1.0,
            "schedule": {"type": "interval", "interval_hours": 2, "max_cycles": 4},
        }
    )
    assert isinstance(task.schedule, IntervalScheduleConfig)
    assert task.max_cycles == 4
    assert task.budget_key == "task:t1"

    slotted = task.model_copy(
        update={"schedule": SlotScheduleConfig(slots=[{"time_of_day": "09:00", "days_of_week": [1]}])}
    )
    assert slotted.max_cycles is None


def test_terminal_statuses() -> None:
    assert StandaloneTaskStatus.COMPLETED.is_terminal
    assert StandaloneTaskStatus.ERRORED.is_terminal
    assert not StandaloneTaskStatus.SCHEDULED.is_terminal
    assert not StandaloneTaskStatus.PENDING.is_terminal
