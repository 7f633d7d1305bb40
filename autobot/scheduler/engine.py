"""Scheduling engine: named asyncio timers bound to callbacks.

Two layers share the same timer machinery:

* ``schedule_callback`` / ``unschedule_callback`` bind an opaque key to an
  async callback. The task executor derives its keys (``task:<id>:slot-<i>``,
  ``task:<id>:interval``) and owns their meaning; the engine only fires them.
* ``schedule_service`` and friends run a registered service's ``start()`` on a
  schedule, gated by its budget and an optional cycle cap.

Each firing runs as a separate asyncio task, so a slow callback never delays
other keys or the next tick of its own key. Unscheduling cancels the timer
loop only; a callback that is already running finishes normally.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from croniter import croniter  # type: ignore[import-untyped]

from autobot.cost.api import CostControlAPI
from autobot.errors import ServiceNotFoundError
from autobot.messaging import Message, MessageBus, MessageType
from autobot.persistence import JsonStore
from autobot.scheduler.models import (
    Schedule,
    ScheduledService,
    ScheduledTask,
    SchedulerState,
    ScheduleType,
)
from autobot.scheduler.registry import ServiceRegistry
from autobot.services.models import ServiceStatus

logger = logging.getLogger(__name__)

ScheduledCallback = Callable[[], Awaitable[None]]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _seconds_until(moment: datetime) -> float:
    now = datetime.now(moment.tzinfo) if moment.tzinfo is not None else datetime.now()
    return (moment - now).total_seconds()


def next_fire_time(schedule: Schedule, base: datetime | None = None) -> datetime | None:
    """Next fire instant strictly after ``base`` (local time when naive)."""
    base = base or datetime.now()
    if schedule.type == ScheduleType.ONCE:
        return schedule.at
    if schedule.type == ScheduleType.INTERVAL:
        return base + timedelta(milliseconds=schedule.interval_ms or 0)
    expression = schedule.cron_expression()
    if expression is None:
        return None
    return croniter(expression, base).get_next(datetime)


class SchedulingEngine:
    """Timer registry keyed by opaque identifiers, plus service scheduling."""

    def __init__(
        self,
        registry: ServiceRegistry,
        bus: MessageBus,
        cost_api: CostControlAPI,
        state_path: str | Path,
    ) -> None:
        self._registry = registry
        self._bus = bus
        self._cost_api = cost_api
        self._store: JsonStore[dict] = JsonStore(state_path, SchedulerState().model_dump(mode="json"))
        self._schedules: dict[str, ScheduledService] = {}
        self._scheduled_tasks: dict[str, ScheduledTask] = {}
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._service_timers: dict[str, asyncio.Task[None]] = {}
        self._inflight: set[asyncio.Task[None]] = set()
        self._persist_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Timer core
    # ------------------------------------------------------------------

    def _start_timer(
        self,
        key: str,
        schedule: Schedule,
        fire: Callable[[], None],
        on_next: Callable[[datetime | None], None] | None = None,
        on_finished: Callable[[], None] | None = None,
    ) -> asyncio.Task[None] | None:
        if schedule.type == ScheduleType.ONCE:
            if schedule.at is None or _seconds_until(schedule.at) <= 0:
                logger.warning("Once schedule for '%s' is in the past; not registering", key)
                return None
        return asyncio.create_task(self._timer_loop(key, schedule, fire, on_next, on_finished), name=f"timer:{key}")

    async def _timer_loop(
        self,
        key: str,
        schedule: Schedule,
        fire: Callable[[], None],
        on_next: Callable[[datetime | None], None] | None,
        on_finished: Callable[[], None] | None,
    ) -> None:
        if schedule.type == ScheduleType.ONCE:
            assert schedule.at is not None
            if on_next is not None:
                on_next(schedule.at)
            await asyncio.sleep(max(0.0, _seconds_until(schedule.at)))
            fire()
            if on_finished is not None:
                on_finished()
            return
        if schedule.type == ScheduleType.INTERVAL:
            delay = (schedule.interval_ms or 0) / 1000
            while True:
                if on_next is not None:
                    on_next(datetime.now(timezone.utc) + timedelta(seconds=delay))
                await asyncio.sleep(delay)
                fire()
        expression = schedule.cron_expression()
        if expression is None:
            logger.error("Schedule for '%s' has no usable cron form", key)
            return
        while True:
            upcoming = croniter(expression, datetime.now()).get_next(datetime)
            if on_next is not None:
                on_next(upcoming)
            await asyncio.sleep(max(0.0, _seconds_until(upcoming)))
            fire()

    def _spawn(self, key: str, callback: ScheduledCallback) -> None:
        task = asyncio.create_task(self._invoke(key, callback), name=f"fire:{key}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    @staticmethod
    async def _invoke(key: str, callback: ScheduledCallback) -> None:
        try:
            await callback()
        except Exception as exc:
            logger.exception("Scheduled callback failed for '%s': %s", key, exc)

    @staticmethod
    def _cancel(timer: asyncio.Task[None] | None) -> None:
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()

    # ------------------------------------------------------------------
    # Keyed callbacks
    # ------------------------------------------------------------------

    def schedule_callback(self, key: str, schedule: Schedule, callback: ScheduledCallback) -> None:
        """Bind ``callback`` to ``key``, replacing any existing binding."""
        self._cancel(self._timers.pop(key, None))
        tracked = ScheduledTask(task_id=key, schedule=schedule)
        self._scheduled_tasks[key] = tracked

        def fire() -> None:
            tracked.last_run = _now_iso()
            self._spawn(key, callback)
            self._request_persist()

        def on_next(moment: datetime | None) -> None:
            tracked.next_run = moment.isoformat() if moment else None

        def on_finished() -> None:
            if self._scheduled_tasks.get(key) is tracked:
                self._timers.pop(key, None)
                self._scheduled_tasks.pop(key, None)
                self._request_persist()

        timer = self._start_timer(key, schedule, fire, on_next, on_finished)
        if timer is None:
            self._scheduled_tasks.pop(key, None)
        else:
            self._timers[key] = timer
            logger.debug("Scheduled callback '%s' (%s)", key, schedule.type.value)
        self._request_persist()

    def unschedule_callback(self, key: str) -> None:
        """Remove ``key``. Unknown keys are ignored."""
        timer = self._timers.pop(key, None)
        tracked = self._scheduled_tasks.pop(key, None)
        self._cancel(timer)
        if timer is not None or tracked is not None:
            logger.debug("Unscheduled callback '%s'", key)
            self._request_persist()

    def is_scheduled(self, key: str) -> bool:
        return key in self._timers

    # ------------------------------------------------------------------
    # Service scheduling
    # ------------------------------------------------------------------

    async def load_state(self) -> None:
        """Restore persisted service schedules and restart the enabled ones."""
        state = SchedulerState.model_validate(await self._store.load())
        for scheduled in state.services:
            self._schedules[scheduled.service_id] = scheduled
            if scheduled.enabled:
                self._start_service_timer(scheduled)
        logger.info("Scheduler state loaded: %d service(s)", len(state.services))

    async def schedule_service(self, service_id: str, schedule: Schedule, max_cycles: int | None = None) -> ScheduledService:
        if not self._registry.has(service_id):
            raise ServiceNotFoundError(service_id)
        await self.unschedule_service(service_id)
        scheduled = ScheduledService(service_id=service_id, schedule=schedule, max_cycles=max_cycles)
        self._schedules[service_id] = scheduled
        self._start_service_timer(scheduled)
        await self._persist_state()
        return scheduled

    def _start_service_timer(self, scheduled: ScheduledService) -> None:
        service_id = scheduled.service_id
        self._cancel(self._service_timers.pop(service_id, None))

        def fire() -> None:
            self._spawn(service_id, lambda: self.execute_service(service_id))

        def on_next(moment: datetime | None) -> None:
            scheduled.next_run = moment.isoformat() if moment else None

        def on_finished() -> None:
            self._service_timers.pop(service_id, None)

        timer = self._start_timer(service_id, scheduled.schedule, fire, on_next, on_finished)
        if timer is not None:
            self._service_timers[service_id] = timer

    async def unschedule_service(self, service_id: str) -> None:
        self._cancel(self._service_timers.pop(service_id, None))
        if self._schedules.pop(service_id, None) is not None:
            await self._persist_state()

    async def execute_service(self, service_id: str) -> None:
        """Run one cycle of ``service_id`` if its schedule and budget allow it."""
        service = self._registry.get(service_id)
        if service is None:
            logger.error("Service not found for execution: %s", service_id)
            return

        scheduled = self._schedules.get(service_id)
        if scheduled is not None and not scheduled.enabled:
            logger.info("Service %s is disabled, skipping", service_id)
            return
        if scheduled is not None and scheduled.max_cycles and scheduled.cycles_completed >= scheduled.max_cycles:
            logger.info("Service %s reached max cycles (%d), stopping", service_id, scheduled.max_cycles)
            await self.stop_service(service_id)
            return

        allowed, _ = await self._cost_api.check_budget(service_id)
        if not allowed:
            logger.warning("Budget exhausted for %s, skipping execution", service_id)
            await self._bus.publish(Message(type=MessageType.BUDGET_EXHAUSTED, service_id=service_id))
            return

        try:
            if scheduled is not None:
                scheduled.status = ServiceStatus.RUNNING
                scheduled.last_run = _now_iso()
            await self._bus.publish(Message(type=MessageType.SERVICE_STARTED, service_id=service_id))
            logger.info("Executing service: %s", service_id)
            await service.start()
            if scheduled is not None:
                scheduled.status = ServiceStatus.IDLE
                scheduled.cycles_completed += 1
                if scheduled.max_cycles and scheduled.cycles_completed >= scheduled.max_cycles:
                    logger.info("Service %s completed max cycles (%d), stopping", service_id, scheduled.max_cycles)
                    await self.stop_service(service_id)
                    return
            logger.info("Service completed: %s", service_id)
        except Exception as exc:
            logger.exception("Service execution failed: %s", service_id)
            if scheduled is not None:
                scheduled.status = ServiceStatus.ERRORED
            await self._bus.publish(
                Message(type=MessageType.SERVICE_ERRORED, service_id=service_id, payload={"error": str(exc)})
            )
        await self._persist_state()

    async def pause_service(self, service_id: str) -> None:
        scheduled = self._schedules.get(service_id)
        if scheduled is not None:
            scheduled.enabled = False
            scheduled.status = ServiceStatus.PAUSED
        self._cancel(self._service_timers.pop(service_id, None))
        service = self._registry.get(service_id)
        if service is not None:
            await service.pause()
        await self._bus.publish(Message(type=MessageType.SERVICE_PAUSED, service_id=service_id))
        await self._persist_state()

    async def resume_service(self, service_id: str) -> None:
        scheduled = self._schedules.get(service_id)
        if scheduled is not None:
            scheduled.enabled = True
            scheduled.status = ServiceStatus.IDLE
            self._start_service_timer(scheduled)
        service = self._registry.get(service_id)
        if service is not None:
            await service.resume()
        await self._persist_state()

    async def stop_service(self, service_id: str) -> None:
        service = self._registry.get(service_id)
        if service is not None:
            await service.stop()
        scheduled = self._schedules.get(service_id)
        if scheduled is not None:
            scheduled.status = ServiceStatus.STOPPED
            scheduled.enabled = False
        self._cancel(self._service_timers.pop(service_id, None))
        await self._bus.publish(Message(type=MessageType.SERVICE_STOPPED, service_id=service_id))
        await self._persist_state()

    def get_next_execution_times(self, service_id: str, count: int) -> list[str]:
        scheduled = self._schedules.get(service_id)
        if scheduled is None or not scheduled.enabled or count <= 0:
            return []
        schedule = scheduled.schedule
        if schedule.type == ScheduleType.INTERVAL:
            step = timedelta(milliseconds=schedule.interval_ms or 0)
            now = datetime.now(timezone.utc)
            return [(now + step * (i + 1)).isoformat() for i in range(count)]
        expression = schedule.cron_expression()
        if expression is None:
            return []
        iterator = croniter(expression, datetime.now())
        return [iterator.get_next(datetime).astimezone().isoformat() for _ in range(count)]

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_state(self) -> SchedulerState:
        return SchedulerState(
            services=list(self._schedules.values()),
            tasks=list(self._scheduled_tasks.values()),
            is_running=True,
        )

    def get_scheduled_service(self, service_id: str) -> ScheduledService | None:
        return self._schedules.get(service_id)

    def _request_persist(self) -> None:
        task = asyncio.create_task(self._persist_state())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _persist_state(self) -> None:
        async with self._persist_lock:
            await self._store.save(self.get_state().model_dump(mode="json"))

    async def start(self) -> None:
        await self.load_state()
        logger.info("Scheduling engine started")

    async def shutdown(self) -> None:
        """Cancel every timer and wait for callbacks already running."""
        timers = [*self._timers.values(), *self._service_timers.values()]
        self._timers.clear()
        self._service_timers.clear()
        for timer in timers:
            timer.cancel()
        for timer in timers:
            with contextlib.suppress(asyncio.CancelledError):
                await timer
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
        await self._persist_state()
