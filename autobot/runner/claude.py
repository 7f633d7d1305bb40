"""Spawn the ``claude`` CLI for one prompt and recover its session id.

The CLI writes one ``<session-uuid>.jsonl`` file per session under
``~/.claude/projects/<abs-working-dir-with-dashes>/``. Listing that directory
before and after the run identifies the session created by this invocation,
which is what the usage reader needs to price the run.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]


@dataclass(frozen=True)
class ClaudeTaskResult:
    exit_code: int
    stdout: str
    stderr: str
    session_id: str


def project_key(working_dir: str | Path) -> str:
    """Directory name the CLI uses for sessions started in ``working_dir``."""
    return str(Path(working_dir).resolve()).replace(os.sep, "-")


def _list_sessions(directory: Path) -> set[str]:
    if not directory.is_dir():
        return set()
    return {entry.name for entry in directory.iterdir() if entry.suffix == ".jsonl"}


class ClaudeRunner:
    def __init__(
        self,
        binary: str = "claude",
        sessions_root: str | Path | None = None,
        session_flush_seconds: float = 0.5,
    ) -> None:
        self.binary = binary
        self.sessions_root = Path(sessions_root) if sessions_root else Path.home() / ".claude" / "projects"
        self.session_flush_seconds = session_flush_seconds

    def build_args(self, prompt: str, model: str | None = None, max_turns: int | None = None) -> list[str]:
        args = ["--print", "--dangerously-skip-permissions", "-p", prompt]
        if model:
            args += ["--model", model]
        if max_turns:
            args += ["--max-turns", str(max_turns)]
        return args

    async def run(
        self,
        prompt: str,
        working_dir: str | Path,
        *,
        max_turns: int | None = None,
        model: str | None = None,
        on_stdout_chunk: ChunkCallback | None = None,
    ) -> ClaudeTaskResult:
        workdir = Path(working_dir)
        workdir.mkdir(parents=True, exist_ok=True)
        session_dir = self.sessions_root / project_key(workdir)
        before = _list_sessions(session_dir)

        process = await asyncio.create_subprocess_exec(
            self.binary,
            *self.build_args(prompt, model, max_turns),
            cwd=str(workdir),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        assert process.stdout is not None and process.stderr is not None

        stdout_parts: list[str] = []

        async def _pump_stdout() -> None:
            assert process.stdout is not None
            while True:
                chunk = await process.stdout.read(4096)
                if not chunk:
                    break
                text = chunk.decode("utf-8", errors="replace")
                stdout_parts.append(text)
                if on_stdout_chunk is not None:
                    on_stdout_chunk(text)

        _, stderr_bytes = await asyncio.gather(_pump_stdout(), process.stderr.read())
        exit_code = await process.wait()
        if exit_code != 0:
            logger.warning("claude exited with %s in %s", exit_code, workdir)

        # Session files are flushed shortly after the process exits.
        await asyncio.sleep(self.session_flush_seconds)
        created = sorted(_list_sessions(session_dir) - before)
        session_id = Path(created[0]).stem if created else ""
        if not session_id:
            logger.warning("No new session file found in %s", session_dir)

        return ClaudeTaskResult(
            exit_code=exit_code,
            stdout="".join(stdout_parts),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
            session_id=session_id,
        )
