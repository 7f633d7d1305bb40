"""Configuration models for autobot."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    """Log level and JSONL log directory."""

    level: str = Field(default="info")
    dir: str = Field(default="logs", description="Directory for JSONL service and task logs.")


class ApiConfig(BaseModel):
    """HTTP API bind address."""

    host: str = Field(default="localhost")
    port: int = Field(default=3000, ge=1, le=65535)


class CostControlConfig(BaseModel):
    """Budget defaults."""

    default_budget: float = Field(default=10.0, ge=0.0)
    alert_threshold: float = Field(default=0.8, ge=0.0, le=1.0)


class SchedulerConfig(BaseModel):
    """Scheduling engine configuration."""

    max_slots: int = Field(default=20, ge=1, description="Upper bound of slot indices cleared on task delete.")


class StorageConfig(BaseModel):
    """Filesystem locations for persisted documents and task outputs."""

    data_dir: str = Field(default="data")
    tasks_dir: str = Field(default="tasks")


class RunnerConfig(BaseModel):
    """External model runner and usage reader."""

    claude_bin: str = Field(default="claude")
    ccusage_bin: str = Field(default="ccusage")
    default_max_turns: int = Field(default=5, ge=1)
    session_flush_seconds: float = Field(default=0.5, ge=0.0)


class AutobotConfig(BaseSettings):
    """Root configuration model for autobot."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    cost_control: CostControlConfig = Field(default_factory=CostControlConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)

    model_config = SettingsConfigDict(
        env_prefix="AUTOBOT_",
        env_nested_delimiter="__",
        extra="ignore",
    )
