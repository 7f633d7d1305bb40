"""Schedule descriptions and scheduler state records."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from croniter import croniter  # type: ignore[import-untyped]
from pydantic import BaseModel, Field, field_validator, model_validator

from autobot.services.models import ServiceStatus

_TIME_OF_DAY = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_time_of_day(value: str) -> tuple[int, int]:
    """Split ``HH:MM`` into ``(hour, minute)``."""
    match = _TIME_OF_DAY.match(value.strip())
    if match is None:
        raise ValueError(f"time_of_day must be HH:MM, got '{value}'")
    return int(match.group(1)), int(match.group(2))


def _check_days(days: list[int]) -> list[int]:
    if not days:
        raise ValueError("days_of_week must not be empty")
    for day in days:
        if not 0 <= day <= 6:
            raise ValueError("days_of_week entries must be 0 (Sunday) to 6 (Saturday)")
    return sorted(set(days))


class ScheduleType(str, Enum):
    ONCE = "once"
    INTERVAL = "interval"
    DAILY = "daily"
    WEEKLY = "weekly"
    CRON = "cron"


class Schedule(BaseModel):
    """Engine-level schedule. Only the fields relevant to ``type`` are read."""

    type: ScheduleType
    at: datetime | None = None
    interval_ms: int | None = Field(default=None, gt=0)
    time_of_day: str | None = None
    days_of_week: list[int] | None = None
    cron: str | None = None

    @field_validator("time_of_day")
    @classmethod
    def time_of_day_format(cls, v: str | None) -> str | None:
        if v is not None:
            parse_time_of_day(v)
        return v

    @model_validator(mode="after")
    def fields_match_type(self) -> Schedule:
        if self.type == ScheduleType.ONCE and self.at is None:
            raise ValueError("once schedule requires 'at'")
        if self.type == ScheduleType.INTERVAL and self.interval_ms is None:
            raise ValueError("interval schedule requires 'interval_ms'")
        if self.type in (ScheduleType.DAILY, ScheduleType.WEEKLY) and self.time_of_day is None:
            raise ValueError(f"{self.type.value} schedule requires 'time_of_day'")
        if self.type == ScheduleType.WEEKLY:
            self.days_of_week = _check_days(self.days_of_week or [])
        if self.type == ScheduleType.CRON:
            if not self.cron or not croniter.is_valid(self.cron):
                raise ValueError(f"Invalid cron expression: '{self.cron}'")
        return self

    def cron_expression(self) -> str | None:
        """Cron form of daily/weekly/cron schedules; ``None`` for once/interval."""
        if self.type == ScheduleType.CRON:
            return self.cron
        if self.type in (ScheduleType.DAILY, ScheduleType.WEEKLY) and self.time_of_day:
            hour, minute = parse_time_of_day(self.time_of_day)
            if self.type == ScheduleType.DAILY:
                return f"{minute} {hour} * * *"
            days = ",".join(str(day) for day in self.days_of_week or [])
            return f"{minute} {hour} * * {days}"
        return None


class ScheduleSlot(BaseModel):
    """One weekly time-of-day slot of a task schedule."""

    time_of_day: str
    days_of_week: list[int]

    @field_validator("time_of_day")
    @classmethod
    def time_of_day_format(cls, v: str) -> str:
        parse_time_of_day(v)
        return v

    @field_validator("days_of_week")
    @classmethod
    def days_in_range(cls, v: list[int]) -> list[int]:
        return _check_days(v)

    def to_schedule(self) -> Schedule:
        return Schedule(type=ScheduleType.WEEKLY, time_of_day=self.time_of_day, days_of_week=self.days_of_week)


class OnceScheduleConfig(BaseModel):
    type: Literal["once"] = "once"


class SlotScheduleConfig(BaseModel):
    type: Literal["scheduled"] = "scheduled"
    slots: list[ScheduleSlot] = Field(min_length=1)


class IntervalScheduleConfig(BaseModel):
    type: Literal["interval"] = "interval"
    interval_hours: float = Field(gt=0)
    max_cycles: int | None = Field(default=None, ge=1)

    def to_schedule(self) -> Schedule:
        return Schedule(type=ScheduleType.INTERVAL, interval_ms=int(self.interval_hours * 3_600_000))


ScheduleConfig = Annotated[
    OnceScheduleConfig | SlotScheduleConfig | IntervalScheduleConfig,
    Field(discriminator="type"),
]


class ScheduledService(BaseModel):
    service_id: str
    schedule: Schedule
    status: ServiceStatus = ServiceStatus.IDLE
    enabled: bool = True
    last_run: str | None = None
    next_run: str | None = None
    max_cycles: int | None = None
    cycles_completed: int = 0


class ScheduledTask(BaseModel):
    """Engine view of a callback registration; ``task_id`` is the engine key."""

    task_id: str
    schedule: Schedule
    enabled: bool = True
    last_run: str | None = None
    next_run: str | None = None


class SchedulerState(BaseModel):
    services: list[ScheduledService] = Field(default_factory=list)
    tasks: list[ScheduledTask] = Field(default_factory=list)
    is_running: bool = False
