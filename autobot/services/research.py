"""Research service: structured summaries for queued or requested topics."""

from __future__ import annotations

from typing import Any, ClassVar

from autobot.persistence import JsonStore
from autobot.services.base import BaseService, StandaloneContext
from autobot.services.models import ServiceConfig


def research_prompt(topic: str) -> str:
    return (
        "Research the following topic thoroughly and produce a structured summary "
        f'with key findings, analysis, and sources:\n\n"{topic}"'
    )


class ResearchService(BaseService):
    config: ClassVar[ServiceConfig] = ServiceConfig(
        id="research",
        name="Research",
        description="Gathers, synthesizes and summarizes information on given topics.",
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._topics: JsonStore[list[str]] = JsonStore(self.data_dir / "research-topics.json", [])

    async def start(self) -> None:
        topics = await self._topics.load()
        if not topics:
            self.logger.info("No research topics queued")
            return

        async def body() -> None:
            for topic in topics:
                if not self.is_running():
                    break
                await self.run_task(label=topic, prompt=research_prompt(topic))

        await self._run_cycle(body)

    async def add_topic(self, topic: str) -> None:
        topics = await self._topics.load()
        topics.append(topic)
        await self._topics.save(topics)
        self.logger.info("Added research topic: %s", topic)

    async def get_topics(self) -> list[str]:
        return await self._topics.load()

    async def clear_topics(self) -> None:
        await self._topics.save([])

    async def execute_standalone(self, params: Any, ctx: StandaloneContext) -> None:
        await self._standalone_task(ctx, label=params.topic, prompt=research_prompt(params.topic))
