"""Shared test fixtures for autobot."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from autobot.app import Autobot
from autobot.config import AutobotConfig, ConfigManager
from autobot.cost.models import SessionUsage
from autobot.runner import ClaudeTaskResult


class FakeRunner:
    """Stands in for the model CLI: returns canned output and a fresh session id."""

    def __init__(self, output: str = "- finding one\n- finding two\n", fail_with: Exception | None = None) -> None:
        self.output = output
        self.fail_with = fail_with
        self.calls: list[dict] = []

    async def run(
        self,
        prompt: str,
        working_dir: str | Path,
        *,
        max_turns: int | None = None,
        model: str | None = None,
        on_stdout_chunk: Callable[[str], None] | None = None,
    ) -> ClaudeTaskResult:
        self.calls.append({"prompt": prompt, "working_dir": str(working_dir), "max_turns": max_turns, "model": model})
        if self.fail_with is not None:
            raise self.fail_with
        if on_stdout_chunk is not None:
            on_stdout_chunk(self.output)
        return ClaudeTaskResult(exit_code=0, stdout=self.output, stderr="", session_id=f"session-{len(self.calls)}")


class FakeUsageClient:
    """Prices every session at a fixed cost."""

    def __init__(self, cost: float = 0.25, tokens_in: int = 100, tokens_out: int = 50) -> None:
        self.cost = cost
        self.tokens_in = tokens_in
        self.tokens_out = tokens_out
        self.sessions: list[str] = []

    async def get_session_cost(self, session_id: str) -> SessionUsage | None:
        self.sessions.append(session_id)
        return SessionUsage(
            session_id=session_id,
            input_tokens=self.tokens_in,
            output_tokens=self.tokens_out,
            total_cost=self.cost,
        )


@pytest.fixture(autouse=True)
def _reset_config_manager():
    ConfigManager._reset_for_tests()
    yield
    ConfigManager._reset_for_tests()


@pytest.fixture
def config(tmp_path: Path) -> AutobotConfig:
    return AutobotConfig.model_validate(
        {
            "storage": {"data_dir": str(tmp_path / "data"), "tasks_dir": str(tmp_path / "tasks")},
            "logging": {"dir": str(tmp_path / "logs")},
            "runner": {"session_flush_seconds": 0},
        }
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fake_usage() -> FakeUsageClient:
    return FakeUsageClient()


@pytest.fixture
def autobot(config: AutobotConfig, fake_runner: FakeRunner, fake_usage: FakeUsageClient) -> Autobot:
    return Autobot(config, runner=fake_runner, usage_client=fake_usage)  # type: ignore[arg-type]
