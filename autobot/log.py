"""Logging setup: console output plus JSON-lines files per service and per task."""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(name: str) -> int:
    return _LEVELS.get(name.strip().lower(), logging.INFO)


class JsonLinesFormatter(logging.Formatter):
    """Render a record as one JSON object: level, serviceId, message, meta, timestamp."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname.lower(),
            "serviceId": getattr(record, "service_id", record.name),
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        }
        meta = getattr(record, "meta", None)
        if isinstance(meta, dict) and meta:
            payload["meta"] = meta
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str = "info", log_dir: str | Path | None = None) -> None:
    """Install console and JSONL handlers on the ``autobot`` logger.

    Calling it again replaces previously installed handlers, so a config
    reload can change level or directory.
    """
    root = logging.getLogger("autobot")
    for handler in list(root.handlers):
        if getattr(handler, "_autobot_handler", False):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(resolve_level(level))

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("[%(levelname)s] [%(name)s] %(message)s"))
    console._autobot_handler = True  # type: ignore[attr-defined]
    root.addHandler(console)

    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(directory / "autobot.jsonl", encoding="utf-8")
        file_handler.setFormatter(JsonLinesFormatter())
        file_handler._autobot_handler = True  # type: ignore[attr-defined]
        root.addHandler(file_handler)


class TaskLogWriter:
    """Append completed-task records to ``tasks.jsonl`` and ``<service>.jsonl``."""

    def __init__(self, log_dir: str | Path) -> None:
        self.log_dir = Path(log_dir)
        self._lock = threading.Lock()

    def write(self, service_id: str, entry: dict[str, Any]) -> None:
        record = dict(entry)
        record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        service_line = {
            "level": "info",
            "serviceId": service_id,
            "message": record.get("message", ""),
            "meta": {
                key: record.get(key)
                for key in ("taskId", "iteration", "tokensUsed", "costEstimate")
            },
            "timestamp": record["timestamp"],
        }
        with self._lock:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._append(self.log_dir / "tasks.jsonl", record)
            self._append(self.log_dir / f"{service_id}.jsonl", service_line)
        logger.info(
            "[TASK] [%s] %s (tokens: %s, cost: $%.4f)",
            service_id,
            record.get("message", ""),
            record.get("tokensUsed", 0),
            float(record.get("costEstimate", 0.0)),
        )

    def read_recent(self, limit: int = 100) -> list[dict[str, Any]]:
        """Return the last ``limit`` task records, oldest first."""
        path = self.log_dir / "tasks.jsonl"
        if not path.exists():
            return []
        rows: list[dict[str, Any]] = []
        for line in path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(row, dict):
                rows.append(row)
        return rows[-limit:] if limit > 0 else rows

    @staticmethod
    def _append(path: Path, data: dict[str, Any]) -> None:
        with path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(data, ensure_ascii=False, default=str) + "\n")
