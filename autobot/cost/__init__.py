"""Budget and cost ledgers."""

from autobot.cost.api import CostControlAPI
from autobot.cost.budget import BudgetManager
from autobot.cost.models import (
    Budget,
    CostEntry,
    CostReport,
    ServiceCostSummary,
    SessionUsage,
    TaskCostSummary,
)
from autobot.cost.tracker import CostTracker
from autobot.cost.usage import CcusageClient

__all__ = [
    "Budget",
    "BudgetManager",
    "CcusageClient",
    "CostControlAPI",
    "CostEntry",
    "CostReport",
    "CostTracker",
    "ServiceCostSummary",
    "SessionUsage",
    "TaskCostSummary",
]
