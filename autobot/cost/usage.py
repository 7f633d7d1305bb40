"""Session cost lookup through the ``ccusage`` command-line tool."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from autobot.cost.models import SessionUsage

logger = logging.getLogger(__name__)


class CcusageClient:
    """Thin async wrapper over ``ccusage ... --json`` subcommands.

    Every query returns ``None`` when the binary is missing, exits non-zero or
    prints something that is not JSON.
    """

    def __init__(self, binary: str = "ccusage") -> None:
        self.binary = binary

    async def _run_json(self, *args: str) -> Any | None:
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.warning("ccusage unavailable (%s): %s", self.binary, exc)
            return None
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            logger.warning(
                "ccusage %s exited with %s: %s",
                " ".join(args),
                process.returncode,
                stderr.decode("utf-8", errors="replace").strip(),
            )
            return None
        try:
            return json.loads(stdout.decode("utf-8"))
        except ValueError:
            logger.warning("ccusage %s returned non-JSON output", " ".join(args))
            return None

    async def get_session_cost(self, session_id: str) -> SessionUsage | None:
        data = await self._run_json("session", "--json", "--id", session_id)
        if not isinstance(data, dict):
            return None
        sessions = data.get("sessions") or []
        if not sessions or not isinstance(sessions[0], dict):
            return None
        session = sessions[0]
        return SessionUsage(
            session_id=str(session.get("sessionId") or session_id),
            input_tokens=int(session.get("inputTokens") or 0),
            output_tokens=int(session.get("outputTokens") or 0),
            cache_creation_tokens=int(session.get("cacheCreationTokens") or 0),
            cache_read_tokens=int(session.get("cacheReadTokens") or 0),
            total_cost=float(session.get("totalCost") or 0.0),
        )
