"""Exception types shared across autobot modules."""

from __future__ import annotations


class AutobotError(Exception):
    """Base class for autobot errors."""


class BudgetNotFoundError(AutobotError):
    """Raised when a deduction targets a key that was never allocated."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No budget allocated for service: {key}")
        self.key = key


class ServiceNotFoundError(AutobotError):
    """Raised when a service id is not present in the registry."""

    def __init__(self, service_id: str) -> None:
        super().__init__(f"Service not found: {service_id}")
        self.service_id = service_id


class TaskNotFoundError(AutobotError):
    """Raised when a standalone task id is unknown."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id
