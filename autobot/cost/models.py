"""Cost-control records: budgets, cost entries and derived reports."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

DEFAULT_ALERT_THRESHOLD = 0.8


@dataclass
class Budget:
    """Spending cap for one budget key.

    ``remaining`` and ``is_exhausted`` are derived; call :meth:`recompute`
    after changing ``allocated`` or ``spent``.
    """

    key: str
    allocated: float
    spent: float = 0.0
    remaining: float = 0.0
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD
    is_exhausted: bool = False

    def recompute(self) -> Budget:
        self.remaining = self.allocated - self.spent
        self.is_exhausted = self.remaining <= 0
        return self

    @property
    def alert_floor(self) -> float:
        """Remaining amount at or below which an exhaustion alert fires."""
        return self.allocated * (1 - self.alert_threshold)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Budget:
        return cls(
            key=str(data.get("key", "")),
            allocated=float(data.get("allocated", 0.0)),
            spent=float(data.get("spent", 0.0)),
            alert_threshold=float(data.get("alert_threshold", DEFAULT_ALERT_THRESHOLD)),
        ).recompute()

    @classmethod
    def missing(cls, key: str) -> Budget:
        """Synthetic exhausted budget reported for keys with no allocation."""
        return cls(key=key, allocated=0.0).recompute()


@dataclass(frozen=True)
class CostEntry:
    service_id: str
    task_id: str
    task_label: str
    session_id: str
    iteration: int
    tokens_input: int
    tokens_output: int
    cache_creation_tokens: int
    cache_read_tokens: int
    estimated_cost: float
    timestamp: str

    @property
    def total_tokens(self) -> int:
        return self.tokens_input + self.tokens_output

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CostEntry:
        return cls(
            service_id=str(data.get("service_id", "")),
            task_id=str(data.get("task_id", "")),
            task_label=str(data.get("task_label", "")),
            session_id=str(data.get("session_id", "")),
            iteration=int(data.get("iteration", 1)),
            tokens_input=int(data.get("tokens_input", 0)),
            tokens_output=int(data.get("tokens_output", 0)),
            cache_creation_tokens=int(data.get("cache_creation_tokens", 0)),
            cache_read_tokens=int(data.get("cache_read_tokens", 0)),
            estimated_cost=float(data.get("estimated_cost", 0.0)),
            timestamp=str(data.get("timestamp", "")),
        )


@dataclass
class TaskCostSummary:
    task_id: str
    task_label: str
    service_id: str
    total_cost: float = 0.0
    iteration_count: int = 0
    entries: list[CostEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "task_label": self.task_label,
            "service_id": self.service_id,
            "total_cost": self.total_cost,
            "iteration_count": self.iteration_count,
            "entries": [entry.to_dict() for entry in self.entries],
        }


@dataclass
class CostReport:
    service_id: str
    total_spent: float
    budget_allocated: float
    budget_remaining: float
    entries: list[CostEntry]
    period_start: str
    period_end: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["entries"] = [entry.to_dict() for entry in self.entries]
        return data


@dataclass(frozen=True)
class ServiceCostSummary:
    service_id: str
    service_name: str
    total_cost: float
    total_tokens: int
    task_count: int
    iteration_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SessionUsage:
    """Token and cost totals for one model session, as reported by ccusage."""

    session_id: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_cost: float = 0.0
