"""Scheduling engine, service registry and their models.

:class:`~autobot.scheduler.executor.TaskExecutor` is imported from its own
module because it depends on :mod:`autobot.tasks`, which in turn imports the
schedule models from here.
"""

from autobot.scheduler.api import SchedulerAPI
from autobot.scheduler.engine import SchedulingEngine, next_fire_time
from autobot.scheduler.models import (
    IntervalScheduleConfig,
    OnceScheduleConfig,
    Schedule,
    ScheduleConfig,
    ScheduledService,
    ScheduledTask,
    SchedulerState,
    ScheduleSlot,
    ScheduleType,
    SlotScheduleConfig,
)
from autobot.scheduler.registry import ServiceRegistry

__all__ = [
    "IntervalScheduleConfig",
    "OnceScheduleConfig",
    "Schedule",
    "ScheduleConfig",
    "ScheduleSlot",
    "ScheduleType",
    "ScheduledService",
    "ScheduledTask",
    "SchedulerAPI",
    "SchedulerState",
    "SchedulingEngine",
    "ServiceRegistry",
    "SlotScheduleConfig",
    "next_fire_time",
]
