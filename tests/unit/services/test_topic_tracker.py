"""Unit tests for the topic tracker service."""

from __future__ import annotations

import pytest

from autobot.app import Autobot
from autobot.services import TopicTrackerService
from autobot.services.topic_tracker import extract_findings, tracker_prompt
from autobot.tasks import TopicTrackerTaskParams


def test_extract_findings_reads_bullets_only() -> None:
    output = "# Report\n- first item\n* second item\n• third item\nplain text\n-  \n"
    assert extract_findings(output) == ["first item", "second item", "third item"]


def test_tracker_prompt_lists_covered_items() -> None:
    assert "Already reported" not in tracker_prompt("rust", [])
    prompt = tracker_prompt("rust", ["tokio 2.0 released"])
    assert "- tokio 2.0 released" in prompt


@pytest.mark.asyncio
async def test_standalone_tracking_feeds_digest_into_next_prompt(autobot: Autobot, fake_runner) -> None:
    service = autobot.registry.get("topic-tracker")
    assert isinstance(service, TopicTrackerService)
    await autobot.budget_manager.allocate("task:t", 5.0)
    params = TopicTrackerTaskParams(topic="Python Packaging")

    await service.run_standalone(params, "sonnet", "task:t")
    digest = await service.digests.get_digest("python-packaging")
    assert digest is not None
    assert [entry.summary for entry in digest.entries] == ["finding one", "finding two"]

    await service.run_standalone(params, "sonnet", "task:t")
    assert "- finding one" in fake_runner.calls[1]["prompt"]
    digest = await service.digests.get_digest("python-packaging")
    assert digest is not None and digest.cycle_count == 2
    assert len(digest.entries) == 2


@pytest.mark.asyncio
async def test_scheduled_cycle_tracks_each_topic(autobot: Autobot, fake_runner) -> None:
    service = autobot.registry.get("topic-tracker")
    assert isinstance(service, TopicTrackerService)
    await service.start()
    assert fake_runner.calls == []

    await autobot.budget_manager.allocate("topic-tracker", 5.0)
    await service.add_topic("llm evals")
    await service.add_topic("llm evals")
    await service.add_topic("wasm")
    assert await service.get_topics() == ["llm evals", "wasm"]
    await service.start()
    assert len(fake_runner.calls) == 2
