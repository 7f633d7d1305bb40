"""Unified configuration system for autobot."""

from autobot.config.loader import ConfigLoadError, YAMLConfigLoader
from autobot.config.manager import ConfigManager, ReloadResult
from autobot.config.models import (
    ApiConfig,
    AutobotConfig,
    CostControlConfig,
    LoggingConfig,
    RunnerConfig,
    SchedulerConfig,
    StorageConfig,
)

__all__ = [
    "ApiConfig",
    "AutobotConfig",
    "ConfigLoadError",
    "ConfigManager",
    "CostControlConfig",
    "LoggingConfig",
    "ReloadResult",
    "RunnerConfig",
    "SchedulerConfig",
    "StorageConfig",
    "YAMLConfigLoader",
]
