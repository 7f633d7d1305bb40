"""Facade over the scheduling engine for external callers (HTTP API, CLI)."""

from __future__ import annotations

from typing import Any

from autobot.errors import ServiceNotFoundError
from autobot.scheduler.engine import SchedulingEngine
from autobot.scheduler.models import Schedule, SchedulerState
from autobot.scheduler.registry import ServiceRegistry
from autobot.services.models import ServiceStatus


class SchedulerAPI:
    def __init__(self, engine: SchedulingEngine, registry: ServiceRegistry) -> None:
        self.engine = engine
        self.registry = registry

    def _require(self, service_id: str) -> None:
        if not self.registry.has(service_id):
            raise ServiceNotFoundError(service_id)

    async def start_service(self, service_id: str) -> None:
        self._require(service_id)
        await self.engine.execute_service(service_id)

    async def stop_service(self, service_id: str) -> None:
        self._require(service_id)
        await self.engine.stop_service(service_id)

    async def pause_service(self, service_id: str) -> None:
        self._require(service_id)
        await self.engine.pause_service(service_id)

    async def resume_service(self, service_id: str) -> None:
        self._require(service_id)
        await self.engine.resume_service(service_id)

    async def get_service_status(self, service_id: str) -> ServiceStatus:
        service = self.registry.get(service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return await service.status()

    async def list_services(self) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for service in self.registry.list():
            scheduled = self.engine.get_scheduled_service(service.config.id)
            rows.append(
                {
                    "id": service.config.id,
                    "name": service.config.name,
                    "description": service.config.description,
                    "status": (await service.status()).value,
                    "schedule": scheduled.model_dump(mode="json") if scheduled else None,
                    "next_runs": self.engine.get_next_execution_times(service.config.id, 3),
                }
            )
        return rows

    async def update_schedule(self, service_id: str, schedule: Schedule, max_cycles: int | None = None) -> None:
        await self.engine.schedule_service(service_id, schedule, max_cycles)

    async def get_state(self) -> SchedulerState:
        return self.engine.get_state()
