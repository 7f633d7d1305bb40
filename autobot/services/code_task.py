"""Code task service: coding work against a target path."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, Field

from autobot.persistence import JsonStore
from autobot.services.base import BaseService, StandaloneContext
from autobot.services.models import ServiceConfig


class QueuedCodeTask(BaseModel):
    description: str
    target_path: str
    max_iterations: int = Field(default=5, ge=1)


def code_task_prompt(description: str, target_path: str) -> str:
    return f"Execute the following coding task:\n\n{description}\n\nTarget path: {target_path}"


class CodeTaskService(BaseService):
    config: ClassVar[ServiceConfig] = ServiceConfig(
        id="code-task",
        name="Code Task",
        description="Code generation, review, refactoring and bug fixes.",
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._queue: JsonStore[list[dict]] = JsonStore(self.data_dir / "code-tasks.json", [])

    async def start(self) -> None:
        queued = [QueuedCodeTask.model_validate(row) for row in await self._queue.load()]
        if not queued:
            self.logger.info("No code tasks queued")
            return

        async def body() -> None:
            for item in queued:
                if not self.is_running():
                    break
                await self.run_task(
                    label=item.description,
                    prompt=code_task_prompt(item.description, item.target_path),
                    max_turns=item.max_iterations,
                )

        await self._run_cycle(body)

    async def add_task(self, item: QueuedCodeTask) -> None:
        rows = await self._queue.load()
        rows.append(item.model_dump())
        await self._queue.save(rows)

    async def get_tasks(self) -> list[QueuedCodeTask]:
        return [QueuedCodeTask.model_validate(row) for row in await self._queue.load()]

    async def clear_tasks(self) -> None:
        await self._queue.save([])

    async def execute_standalone(self, params: Any, ctx: StandaloneContext) -> None:
        await self._standalone_task(
            ctx,
            label=params.description,
            prompt=code_task_prompt(params.description, params.target_path),
            max_turns=params.max_iterations,
        )
