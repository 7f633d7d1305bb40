"""Typed whole-document JSON store with default fallback and atomic replace."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JsonStore(Generic[T]):
    """Load and save one JSON document.

    ``load`` returns a fresh copy of ``default`` when the file is missing or
    cannot be parsed. ``save`` writes to a sibling temp file and renames it
    over the target so readers never observe a half-written document.
    """

    def __init__(self, path: str | Path, default: T) -> None:
        self.path = Path(path)
        self._default = default

    async def load(self) -> T:
        return await asyncio.to_thread(self.load_sync)

    async def save(self, data: T) -> None:
        await asyncio.to_thread(self.save_sync, data)

    def load_sync(self) -> T:
        if not self.path.exists():
            return copy.deepcopy(self._default)
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable JSON document %s, using default: %s", self.path, exc)
            return copy.deepcopy(self._default)

    def save_sync(self, data: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
