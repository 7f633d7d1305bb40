"""FastAPI application factory for autobot."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from autobot import __version__
from autobot.api.routes.budgets import router as budgets_router
from autobot.api.routes.costs import router as costs_router
from autobot.api.routes.services import router as services_router
from autobot.api.routes.tasks import router as tasks_router
from autobot.app import Autobot
from autobot.config import AutobotConfig
from autobot.errors import BudgetNotFoundError, ServiceNotFoundError, TaskNotFoundError

logger = logging.getLogger(__name__)


def _log_json(event: str, **fields: object) -> None:
    if not logger.isEnabledFor(logging.INFO):
        return
    logger.info("%s", json.dumps({"event": event, **fields}, ensure_ascii=False, sort_keys=True))


def create_app(autobot: Autobot | None = None, config: AutobotConfig | None = None) -> FastAPI:
    """Create the API app. The runtime is started and stopped with the app lifespan."""
    runtime = autobot or Autobot(config or AutobotConfig())

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await runtime.start()
        try:
            yield
        finally:
            await runtime.shutdown()

    app = FastAPI(title="autobot API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.autobot = runtime

    @app.middleware("http")
    async def request_log(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        _log_json(
            "api_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000.0, 3),
        )
        return response

    @app.exception_handler(ServiceNotFoundError)
    @app.exception_handler(TaskNotFoundError)
    @app.exception_handler(BudgetNotFoundError)
    async def not_found(_: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def bad_request(_: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/state")
    async def state(request: Request) -> dict:
        return (await request.app.state.autobot.scheduler_api.get_state()).model_dump(mode="json")

    @app.get("/api/logs")
    def logs(request: Request, limit: int = 100) -> list[dict]:
        return request.app.state.autobot.task_log.read_recent(limit)

    app.include_router(services_router)
    app.include_router(budgets_router)
    app.include_router(costs_router)
    app.include_router(tasks_router)
    return app
