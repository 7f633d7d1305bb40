"""Long-running server command."""

from __future__ import annotations

import logging

import uvicorn

from autobot.api import create_app
from autobot.cli.runtime import build_runtime
from autobot.config import AutobotConfig, ConfigManager
from autobot.log import resolve_level

logger = logging.getLogger(__name__)


def _apply_log_level(_: AutobotConfig, new: AutobotConfig) -> None:
    logging.getLogger("autobot").setLevel(resolve_level(new.logging.level))


def serve_command(config: str | None = None, host: str | None = None, port: int | None = None) -> None:
    runtime = build_runtime(config)
    ConfigManager.instance().on_change(_apply_log_level)
    app = create_app(runtime)
    bind_host = host or runtime.config.api.host
    bind_port = port or runtime.config.api.port
    logger.info("Serving autobot API on %s:%d", bind_host, bind_port)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="warning")
