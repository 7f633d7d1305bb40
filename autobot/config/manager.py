"""Process-wide configuration access for autobot."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, ClassVar

from autobot.config.loader import YAMLConfigLoader
from autobot.config.models import AutobotConfig

logger = logging.getLogger(__name__)

ConfigListener = Callable[[AutobotConfig, AutobotConfig], None]

ENV_PREFIX = "AUTOBOT_"
_RESERVED_ENV = {"AUTOBOT_CONFIG"}


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _coerce_env_value(raw: str) -> Any:
    value = raw.strip()
    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        pass
    if value[:1] in {"[", "{"}:
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def _collect_env_overrides(prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """Turn AUTOBOT_SECTION__FIELD variables into a nested override mapping."""
    overrides: dict[str, Any] = {}
    for key, raw_value in os.environ.items():
        if not key.startswith(prefix) or key in _RESERVED_ENV:
            continue
        path = [p.strip().lower() for p in key[len(prefix) :].split("__") if p.strip()]
        if not path:
            continue
        cursor = overrides
        for part in path[:-1]:
            nested = cursor.get(part)
            if not isinstance(nested, dict):
                nested = {}
                cursor[part] = nested
            cursor = nested
        cursor[path[-1]] = _coerce_env_value(raw_value)
    return overrides


def _flatten_changes(old: dict[str, Any], new: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for key in set(old) | set(new):
        path = f"{prefix}.{key}" if prefix else key
        before, after = old.get(key), new.get(key)
        if isinstance(before, dict) and isinstance(after, dict):
            changes.update(_flatten_changes(before, after, path))
        elif before != after:
            changes[path] = after
    return changes


def _set_path(target: dict[str, Any], path: str, value: Any) -> None:
    parts = [p for p in path.split(".") if p]
    if not parts:
        return
    cursor = target
    for part in parts[:-1]:
        cursor = cursor.setdefault(part, {})
    cursor[parts[-1]] = value


@dataclass(frozen=True)
class ReloadResult:
    """Outcome of a hot reload: which dotted paths were applied or skipped."""

    applied: dict[str, Any]
    skipped: dict[str, Any]


class ConfigManager:
    """Thread-safe singleton holding the active AutobotConfig."""

    _instance: ClassVar[ConfigManager | None] = None
    _class_lock: ClassVar[Lock] = Lock()
    _hot_reloadable_prefixes: ClassVar[tuple[str, ...]] = (
        "cost_control",
        "scheduler",
        "logging.level",
    )

    def __init__(self) -> None:
        self._lock = Lock()
        self._config = AutobotConfig()
        self._listeners: list[ConfigListener] = []
        self._config_path: str | None = None
        self._runtime_overrides: dict[str, Any] = {}

    @classmethod
    def instance(cls) -> ConfigManager:
        if cls._instance is not None:
            return cls._instance
        with cls._class_lock:
            if cls._instance is None:
                cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset_for_tests(cls) -> None:
        with cls._class_lock:
            cls._instance = None

    @staticmethod
    def _build(config_path: str | None, runtime_overrides: dict[str, Any]) -> AutobotConfig:
        merged = _deep_merge(YAMLConfigLoader.load_dict(config_path), _collect_env_overrides())
        merged = _deep_merge(merged, runtime_overrides)
        return AutobotConfig.model_validate(merged)

    @classmethod
    def load(
        cls,
        config_path: str | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> ConfigManager:
        """Load configuration from defaults, YAML, environment and runtime overrides."""
        manager = cls.instance()
        runtime_overrides = overrides or {}
        new_config = cls._build(config_path, runtime_overrides)
        with manager._lock:
            old = manager._config
            manager._config = new_config
            manager._config_path = config_path
            manager._runtime_overrides = runtime_overrides
            listeners = list(manager._listeners)
        for callback in listeners:
            callback(old, new_config)
        return manager

    def get(self) -> AutobotConfig:
        with self._lock:
            return self._config

    def on_change(self, callback: ConfigListener) -> None:
        with self._lock:
            self._listeners.append(callback)

    def reload(self, config_path: str | None = None) -> ReloadResult:
        """Re-read configuration, applying only paths that are safe to change live."""
        with self._lock:
            old_cfg = self._config
            target_path = config_path if config_path is not None else self._config_path
            runtime_overrides = dict(self._runtime_overrides)
            listeners = list(self._listeners)

        candidate = self._build(target_path, runtime_overrides)
        old_dump = old_cfg.model_dump(mode="python")
        changes = _flatten_changes(old_dump, candidate.model_dump(mode="python"))

        applied: dict[str, Any] = {}
        skipped: dict[str, Any] = {}
        patch: dict[str, Any] = {}
        for path, value in changes.items():
            if path.startswith(self._hot_reloadable_prefixes):
                applied[path] = value
                _set_path(patch, path, value)
            else:
                skipped[path] = value
        if skipped:
            logger.info("Config changes require restart: %s", ", ".join(sorted(skipped)))

        with self._lock:
            self._config_path = target_path
            if applied:
                self._config = AutobotConfig.model_validate(_deep_merge(old_dump, patch))
            new_cfg = self._config
        if applied:
            for callback in listeners:
                callback(old_cfg, new_cfg)
        return ReloadResult(applied=applied, skipped=skipped)
