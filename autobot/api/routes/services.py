"""Service control endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from autobot.api.deps import autobot_dep
from autobot.app import Autobot
from autobot.errors import ServiceNotFoundError
from autobot.scheduler.models import Schedule
from autobot.services import BaseService, ClaudeModel, CodeTaskService, ResearchService, TopicTrackerService
from autobot.services.code_task import QueuedCodeTask

router = APIRouter(prefix="/api/services", tags=["services"])


class ScheduleUpdate(BaseModel):
    schedule: Schedule
    max_cycles: int | None = Field(default=None, ge=1)


class ModelUpdate(BaseModel):
    model: ClaudeModel


class TopicRequest(BaseModel):
    topic: str = Field(min_length=1)


def _require_service(autobot: Autobot, service_id: str) -> BaseService:
    service = autobot.registry.get(service_id)
    if service is None:
        raise ServiceNotFoundError(service_id)
    return service


def _topic_service(autobot: Autobot, service_id: str) -> ResearchService | TopicTrackerService:
    service = _require_service(autobot, service_id)
    if not isinstance(service, (ResearchService, TopicTrackerService)):
        raise ValueError(f"Service does not track topics: {service_id}")
    return service


def _code_task_service(autobot: Autobot) -> CodeTaskService:
    service = _require_service(autobot, CodeTaskService.config.id)
    if not isinstance(service, CodeTaskService):
        raise ValueError("Registered code-task service does not keep a queue")
    return service


@router.get("")
async def list_services(autobot: autobot_dep) -> list[dict]:
    return await autobot.scheduler_api.list_services()


@router.get("/{service_id}")
async def get_service(service_id: str, autobot: autobot_dep) -> dict:
    service = _require_service(autobot, service_id)
    report = await service.report()
    scheduled = autobot.engine.get_scheduled_service(service_id)
    return {
        "config": service.config.model_dump(mode="json"),
        "report": report.model_dump(mode="json"),
        "schedule": scheduled.model_dump(mode="json") if scheduled else None,
        "model": service.get_service_config().model.value,
    }


@router.get("/{service_id}/runs")
async def list_runs(service_id: str, autobot: autobot_dep) -> list[dict]:
    service = _require_service(autobot, service_id)
    return [run.model_dump(mode="json") for run in await service.get_runs()]


@router.post("/{service_id}/start")
async def start_service(service_id: str, autobot: autobot_dep) -> dict[str, str]:
    await autobot.scheduler_api.start_service(service_id)
    return {"status": "started"}


@router.post("/{service_id}/stop")
async def stop_service(service_id: str, autobot: autobot_dep) -> dict[str, str]:
    await autobot.scheduler_api.stop_service(service_id)
    return {"status": "stopped"}


@router.post("/{service_id}/pause")
async def pause_service(service_id: str, autobot: autobot_dep) -> dict[str, str]:
    await autobot.scheduler_api.pause_service(service_id)
    return {"status": "paused"}


@router.post("/{service_id}/resume")
async def resume_service(service_id: str, autobot: autobot_dep) -> dict[str, str]:
    await autobot.scheduler_api.resume_service(service_id)
    return {"status": "resumed"}


@router.put("/{service_id}/schedule")
async def update_schedule(service_id: str, body: ScheduleUpdate, autobot: autobot_dep) -> dict:
    await autobot.scheduler_api.update_schedule(service_id, body.schedule, body.max_cycles)
    scheduled = autobot.engine.get_scheduled_service(service_id)
    return scheduled.model_dump(mode="json") if scheduled else {}


@router.put("/{service_id}/model")
async def update_model(service_id: str, body: ModelUpdate, autobot: autobot_dep) -> dict[str, str]:
    service = _require_service(autobot, service_id)
    await service.set_model(body.model)
    return {"model": body.model.value}


@router.get("/code-task/queue")
async def list_code_tasks(autobot: autobot_dep) -> list[dict]:
    return [item.model_dump() for item in await _code_task_service(autobot).get_tasks()]


@router.post("/code-task/queue", status_code=201)
async def queue_code_task(body: QueuedCodeTask, autobot: autobot_dep) -> list[dict]:
    service = _code_task_service(autobot)
    await service.add_task(body)
    return [item.model_dump() for item in await service.get_tasks()]


@router.delete("/code-task/queue", status_code=204)
async def clear_code_tasks(autobot: autobot_dep) -> Response:
    await _code_task_service(autobot).clear_tasks()
    return Response(status_code=204)


@router.get("/{service_id}/topics")
async def list_topics(service_id: str, autobot: autobot_dep) -> list[str]:
    return await _topic_service(autobot, service_id).get_topics()


@router.post("/{service_id}/topics", status_code=201)
async def add_topic(service_id: str, body: TopicRequest, autobot: autobot_dep) -> list[str]:
    service = _topic_service(autobot, service_id)
    await service.add_topic(body.topic)
    return await service.get_topics()


@router.delete("/{service_id}/topics", status_code=204)
async def clear_topics(service_id: str, autobot: autobot_dep) -> Response:
    await _topic_service(autobot, service_id).clear_topics()
    return Response(status_code=204)
