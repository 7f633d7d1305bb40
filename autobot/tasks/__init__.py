"""Standalone task records and persistence."""

from autobot.tasks.models import (
    CodeTaskParams,
    CreateTaskInput,
    ReportTaskParams,
    ResearchTaskParams,
    SelfImproveTaskParams,
    SpendingLimit,
    StandaloneTask,
    StandaloneTaskStatus,
    TaskParams,
    TaskServiceType,
    TopicTrackerTaskParams,
)
from autobot.tasks.store import TaskStore

__all__ = [
    "CodeTaskParams",
    "CreateTaskInput",
    "ReportTaskParams",
    "ResearchTaskParams",
    "SelfImproveTaskParams",
    "SpendingLimit",
    "StandaloneTask",
    "StandaloneTaskStatus",
    "TaskParams",
    "TaskServiceType",
    "TaskStore",
    "TopicTrackerTaskParams",
]
