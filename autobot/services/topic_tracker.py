"""Topic tracker: recurring checks for new developments on a topic.

Each cycle's bullet-point findings are folded into a per-topic digest, and the
digest is listed in the next prompt as already covered.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar

from autobot.persistence import JsonStore
from autobot.services.base import BaseService, StandaloneContext, slugify
from autobot.services.digest import DigestEntry, DigestStore
from autobot.services.models import ServiceConfig

PROMPT_DIGEST_ITEMS = 50


def extract_findings(output: str) -> list[str]:
    """Bullet lines (``-``, ``*`` or ``•``) of a tracker report, stripped."""
    findings: list[str] = []
    for line in output.splitlines():
        stripped = line.strip()
        if stripped[:2] in {"- ", "* ", "• "}:
            text = stripped[2:].strip()
            if text:
                findings.append(text)
    return findings


def tracker_prompt(topic: str, covered: list[str]) -> str:
    prompt = (
        f'Check for recent developments and changes regarding: "{topic}". '
        "Summarize any new findings, compare with known information, and highlight "
        "significant changes. List each finding as a single '- ' bullet line."
    )
    if covered:
        listing = "\n".join(f"- {summary}" for summary in covered)
        prompt += f"\n\nAlready reported in earlier cycles (do not repeat):\n{listing}"
    return prompt


class TopicTrackerService(BaseService):
    config: ClassVar[ServiceConfig] = ServiceConfig(
        id="topic-tracker",
        name="Topic Tracker",
        description="Tracks topics over time and reports new developments.",
    )
    default_max_turns: ClassVar[int] = 3

    def __init__(self, *args: Any, digest_store: DigestStore | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._topics: JsonStore[list[str]] = JsonStore(self.data_dir / "tracked-topics.json", [])
        self.digests = digest_store or DigestStore(self.data_dir / "intel-digests.json")

    async def start(self) -> None:
        topics = await self._topics.load()
        if not topics:
            self.logger.info("No topics being tracked")
            return

        async def body() -> None:
            for topic in topics:
                if not self.is_running():
                    break
                await self._track(topic)

        await self._run_cycle(body)

    async def _track(self, topic: str, ctx: StandaloneContext | None = None) -> None:
        key = slugify(topic, 50)
        digest = await self.digests.get_digest(key)
        covered = [entry.summary for entry in digest.entries[-PROMPT_DIGEST_ITEMS:]] if digest else []
        kwargs: dict[str, Any] = {"label": f"track: {topic}", "prompt": tracker_prompt(topic, covered)}
        outcome = await (self._standalone_task(ctx, **kwargs) if ctx else self.run_task(**kwargs))
        now = datetime.now(timezone.utc).isoformat()
        entries = [
            DigestEntry(id=slugify(summary, 80), summary=summary, tracked_at=now)
            for summary in extract_findings(outcome.output)
        ]
        await self.digests.update_digest(key, entries, topic)

    async def add_topic(self, topic: str) -> None:
        topics = await self._topics.load()
        if topic not in topics:
            topics.append(topic)
            await self._topics.save(topics)

    async def get_topics(self) -> list[str]:
        return await self._topics.load()

    async def clear_topics(self) -> None:
        await self._topics.save([])

    async def execute_standalone(self, params: Any, ctx: StandaloneContext) -> None:
        await self._track(params.topic, ctx)
