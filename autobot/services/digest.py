"""Rolling digests of already-reported findings, one per tracked topic.

Recurring trackers feed the digest back into the next prompt instead of the
full previous reports, so prompt size stays bounded across cycles.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from autobot.persistence import JsonStore

MAX_DIGEST_ENTRIES = 200


class DigestEntry(BaseModel):
    id: str
    summary: str
    tracked_at: str


class Digest(BaseModel):
    topic: str
    style: str = "topic-tracker"
    entries: list[DigestEntry] = Field(default_factory=list)
    last_updated_at: str
    cycle_count: int = 0


class DigestStore:
    def __init__(self, path: str | Path, max_entries: int = MAX_DIGEST_ENTRIES) -> None:
        self._store: JsonStore[dict[str, dict]] = JsonStore(path, {})
        self._lock = asyncio.Lock()
        self.max_entries = max_entries

    async def get_digest(self, topic_key: str) -> Digest | None:
        row = (await self._store.load()).get(topic_key)
        return Digest.model_validate(row) if row else None

    async def update_digest(
        self,
        topic_key: str,
        new_entries: list[DigestEntry],
        topic: str,
        style: str = "topic-tracker",
    ) -> Digest:
        """Merge entries by id, keep the newest ``max_entries``, bump the cycle count."""
        async with self._lock:
            rows = await self._store.load()
            now = datetime.now(timezone.utc).isoformat()
            existing = rows.get(topic_key)
            digest = (
                Digest.model_validate(existing)
                if existing
                else Digest(topic=topic, style=style, last_updated_at=now)
            )
            seen = {entry.id for entry in digest.entries}
            for entry in new_entries:
                if entry.id not in seen:
                    digest.entries.append(entry)
                    seen.add(entry.id)
            digest.entries = digest.entries[-self.max_entries :]
            digest.last_updated_at = now
            digest.cycle_count += 1
            rows[topic_key] = digest.model_dump(mode="json")
            await self._store.save(rows)
        return digest

    async def delete_digest(self, topic_key: str) -> None:
        async with self._lock:
            rows = await self._store.load()
            if rows.pop(topic_key, None) is not None:
                await self._store.save(rows)
