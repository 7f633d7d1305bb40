"""Unit tests for Autobot runtime wiring."""

from __future__ import annotations

import pytest

from autobot.app import Autobot
from autobot.messaging import Message, MessageType
from autobot.scheduler import Schedule, ScheduleType
from autobot.services.models import ServiceStatus


def test_default_services_registered(autobot: Autobot) -> None:
    assert sorted(service.config.id for service in autobot.registry.list()) == [
        "code-task",
        "report",
        "research",
        "self-improve",
        "topic-tracker",
    ]


def test_explicit_service_list_replaces_defaults(config, fake_runner, fake_usage) -> None:  # type: ignore[no-untyped-def]
    bot = Autobot(config, runner=fake_runner, usage_client=fake_usage, services=[])
    assert bot.registry.list() == []


@pytest.mark.asyncio
async def test_budget_exhaustion_pauses_registered_service(autobot: Autobot) -> None:
    await autobot.start()
    await autobot.engine.schedule_service("report", Schedule(type=ScheduleType.DAILY, time_of_day="02:00"))
    await autobot.bus.publish(Message(type=MessageType.BUDGET_EXHAUSTED, service_id="report"))
    await autobot.bus.drain()
    scheduled = autobot.engine.get_scheduled_service("report")
    assert scheduled is not None and scheduled.enabled is False
    service = autobot.registry.get("report")
    assert service is not None and await service.status() == ServiceStatus.PAUSED
    await autobot.shutdown()


@pytest.mark.asyncio
async def test_budget_exhaustion_for_task_key_is_ignored(autobot: Autobot) -> None:
    await autobot.start()
    seen: list[Message] = []

    async def spy(message: Message) -> None:
        seen.append(message)

    autobot.bus.subscribe(MessageType.SERVICE_PAUSED, spy)
    await autobot.bus.publish(Message(type=MessageType.BUDGET_EXHAUSTED, service_id="task:abc"))
    await autobot.bus.drain()
    assert seen == []
    await autobot.shutdown()


@pytest.mark.asyncio
async def test_restart_restores_schedules(config, fake_runner, fake_usage) -> None:  # type: ignore[no-untyped-def]
    first = Autobot(config, runner=fake_runner, usage_client=fake_usage)
    await first.start()
    await first.engine.schedule_service("research", Schedule(type=ScheduleType.CRON, cron="15 4 * * *"))
    await first.shutdown()

    second = Autobot(config, runner=fake_runner, usage_client=fake_usage)
    await second.start()
    scheduled = second.engine.get_scheduled_service("research")
    assert scheduled is not None and scheduled.schedule.cron == "15 4 * * *"
    await second.shutdown()
