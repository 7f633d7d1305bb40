"""Unit tests for logging setup and task log files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from autobot.log import JsonLinesFormatter, TaskLogWriter, configure_logging, resolve_level


def test_resolve_level_accepts_warn_alias() -> None:
    assert resolve_level("warn") == logging.WARNING
    assert resolve_level("DEBUG") == logging.DEBUG
    assert resolve_level("nonsense") == logging.INFO


def test_json_lines_formatter_fields() -> None:
    record = logging.LogRecord("autobot.test", logging.WARNING, __file__, 1, "spent %s", ("$1",), None)
    record.service_id = "report"
    record.meta = {"taskId": "t1"}
    payload = json.loads(JsonLinesFormatter().format(record))
    assert payload["level"] == "warning"
    assert payload["serviceId"] == "report"
    assert payload["message"] == "spent $1"
    assert payload["meta"] == {"taskId": "t1"}
    assert "timestamp" in payload


def test_configure_logging_replaces_own_handlers(tmp_path: Path) -> None:
    configure_logging("debug", tmp_path)
    configure_logging("info", tmp_path)
    root = logging.getLogger("autobot")
    owned = [h for h in root.handlers if getattr(h, "_autobot_handler", False)]
    assert len(owned) == 2
    assert root.level == logging.INFO
    logging.getLogger("autobot.test").info("hello")
    for handler in owned:
        handler.flush()
    lines = (tmp_path / "autobot.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["message"] == "hello"
    for handler in owned:
        root.removeHandler(handler)
        handler.close()


def test_task_log_writer_appends_both_files(tmp_path: Path) -> None:
    writer = TaskLogWriter(tmp_path)
    writer.write("research", {"taskId": "t1", "message": "Completed: x", "tokensUsed": 10, "costEstimate": 0.1})
    writer.write("research", {"taskId": "t2", "message": "Completed: y", "tokensUsed": 5, "costEstimate": 0.2})
    tasks = writer.read_recent()
    assert [row["taskId"] for row in tasks] == ["t1", "t2"]
    service_lines = (tmp_path / "research.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(service_lines[0])["meta"]["taskId"] == "t1"
    assert writer.read_recent(limit=1)[0]["taskId"] == "t2"


def test_read_recent_without_file(tmp_path: Path) -> None:
    assert TaskLogWriter(tmp_path / "none").read_recent() == []
