"""Helpers shared by CLI commands that need a configured runtime."""

from __future__ import annotations

from autobot.app import Autobot
from autobot.config import AutobotConfig, ConfigManager
from autobot.log import configure_logging


def load_config(config_path: str | None = None) -> AutobotConfig:
    return ConfigManager.load(config_path=config_path).get()


def build_runtime(config_path: str | None = None) -> Autobot:
    config = load_config(config_path)
    configure_logging(config.logging.level, config.logging.dir)
    return Autobot(config)
