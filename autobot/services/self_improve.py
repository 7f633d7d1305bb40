"""Self-improvement service: iterative analysis of the system's own output."""

from __future__ import annotations

from typing import Any, ClassVar

from autobot.services.base import BaseService, StandaloneContext, generate_task_id
from autobot.services.models import ServiceConfig


def improvement_prompt(iteration: int, total: int) -> str:
    return (
        f"Iteration {iteration} of {total}: Analyze the autobot system logs, performance metrics, "
        "and service outputs. Identify areas for improvement in prompts, workflows, or "
        "configurations. Suggest and implement concrete improvements."
    )


class SelfImproveService(BaseService):
    config: ClassVar[ServiceConfig] = ServiceConfig(
        id="self-improve",
        name="Self-Iterative Improvement",
        description="Analyzes system performance and iteratively improves services and workflows.",
    )
    max_iterations: int = 3

    async def start(self) -> None:
        task_id = generate_task_id(self.service_id, "system-optimization")

        async def body() -> None:
            for i in range(1, self.max_iterations + 1):
                if not self.is_running():
                    break
                await self.run_task(
                    label=f"system optimization (iteration {i}/{self.max_iterations})",
                    prompt=improvement_prompt(i, self.max_iterations),
                    iteration=i,
                    existing_task_id=task_id,
                )

        await self._run_cycle(body)

    async def execute_standalone(self, params: Any, ctx: StandaloneContext) -> None:
        task_id = generate_task_id(self.service_id, "standalone")
        total = params.max_iterations
        for i in range(1, total + 1):
            await self._standalone_task(
                ctx,
                label=f"optimization (iteration {i}/{total})",
                prompt=improvement_prompt(i, total),
                iteration=i,
                existing_task_id=task_id,
            )
