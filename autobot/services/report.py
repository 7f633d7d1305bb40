"""Report service: one prompt per run."""

from __future__ import annotations

from typing import Any, ClassVar

from autobot.services.base import BaseService, StandaloneContext
from autobot.services.models import ServiceConfig

SYSTEM_REPORT_PROMPT = (
    "Generate a comprehensive system status report summarizing all service activity, "
    "costs, and performance metrics."
)


class ReportService(BaseService):
    config: ClassVar[ServiceConfig] = ServiceConfig(
        id="report",
        name="Report",
        description="Generates scheduled reports that aggregate data from other services.",
    )
    default_max_turns: ClassVar[int] = 3

    async def start(self) -> None:
        async def body() -> None:
            await self.run_task(label="system-report", prompt=SYSTEM_REPORT_PROMPT)

        await self._run_cycle(body)

    async def execute_standalone(self, params: Any, ctx: StandaloneContext) -> None:
        await self._standalone_task(ctx, label="report", prompt=params.prompt)
