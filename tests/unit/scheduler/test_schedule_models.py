"""Unit tests for schedule models and fire-time computation."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from pydantic import TypeAdapter, ValidationError

from autobot.scheduler import (
    IntervalScheduleConfig,
    Schedule,
    ScheduleConfig,
    ScheduleSlot,
    ScheduleType,
    SlotScheduleConfig,
    next_fire_time,
)
from autobot.scheduler.models import parse_time_of_day


def test_parse_time_of_day() -> None:
    assert parse_time_of_day("07:05") == (7, 5)
    assert parse_time_of_day("23:59") == (23, 59)
    with pytest.raises(ValueError):
        parse_time_of_day("24:00")
    with pytest.raises(ValueError):
        parse_time_of_day("7pm")


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "once"},
        {"type": "interval"},
        {"type": "interval", "interval_ms": 0},
        {"type": "daily"},
        {"type": "weekly", "time_of_day": "09:00", "days_of_week": []},
        {"type": "weekly", "time_of_day": "09:00", "days_of_week": [7]},
        {"type": "cron", "cron": "not a cron"},
    ],
)
def test_schedule_rejects_incomplete_payloads(payload: dict) -> None:
    with pytest.raises(ValidationError):
        Schedule.model_validate(payload)


def test_cron_expressions() -> None:
    daily = Schedule(type=ScheduleType.DAILY, time_of_day="08:30")
    weekly = Schedule(type=ScheduleType.WEEKLY, time_of_day="18:00", days_of_week=[5, 1, 1])
    cron = Schedule(type=ScheduleType.CRON, cron="*/5 * * * *")
    assert daily.cron_expression() == "30 8 * * *"
    assert weekly.cron_expression() == "0 18 * * 1,5"
    assert cron.cron_expression() == "*/5 * * * *"
    assert Schedule(type=ScheduleType.INTERVAL, interval_ms=10).cron_expression() is None


def test_next_fire_time_per_type() -> None:
    base = datetime(2026, 3, 4, 10, 0)  # Wednesday
    assert next_fire_time(Schedule(type=ScheduleType.INTERVAL, interval_ms=60_000), base) == base + timedelta(minutes=1)
    assert next_fire_time(Schedule(type=ScheduleType.DAILY, time_of_day="09:00"), base) == datetime(2026, 3, 5, 9, 0)
    assert next_fire_time(Schedule(type=ScheduleType.DAILY, time_of_day="11:15"), base) == datetime(2026, 3, 4, 11, 15)
    weekly = Schedule(type=ScheduleType.WEEKLY, time_of_day="09:00", days_of_week=[1])
    assert next_fire_time(weekly, base) == datetime(2026, 3, 9, 9, 0)
    at = datetime(2026, 5, 1, 12, 0)
    assert next_fire_time(Schedule(type=ScheduleType.ONCE, at=at), base) == at


def test_slot_to_schedule_is_weekly() -> None:
    schedule = ScheduleSlot(time_of_day="06:00", days_of_week=[0, 6]).to_schedule()
    assert schedule.type == ScheduleType.WEEKLY
    assert schedule.cron_expression() == "0 6 * * 0,6"


def test_interval_config_converts_hours_to_ms() -> None:
    schedule = IntervalScheduleConfig(interval_hours=1.5, max_cycles=2).to_schedule()
    assert schedule.interval_ms == 5_400_000


def test_schedule_config_discriminates_on_type() -> None:
    adapter = TypeAdapter(ScheduleConfig)
    parsed = adapter.validate_python({"type": "scheduled", "slots": [{"time_of_day": "10:00", "days_of_week": [2]}]})
    assert isinstance(parsed, SlotScheduleConfig)
    with pytest.raises(ValidationError):
        adapter.validate_python({"type": "scheduled", "slots": []})
    with pytest.raises(ValidationError):
        adapter.validate_python({"type": "interval", "interval_hours": 0})
