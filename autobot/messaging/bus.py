"""Typed in-process topic bus with non-blocking publish."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Topics carried on the bus."""

    BUDGET_CHECK = "budget.check"
    BUDGET_EXHAUSTED = "budget.exhausted"
    BUDGET_ADDED = "budget.added"
    SERVICE_STARTED = "service.started"
    SERVICE_STOPPED = "service.stopped"
    SERVICE_PAUSED = "service.paused"
    SERVICE_ERRORED = "service.errored"
    COST_RECORDED = "cost.recorded"


@dataclass(frozen=True)
class Message:
    type: MessageType
    service_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


MessageHandler = Callable[[Message], Awaitable[None]]


class MessageBus:
    """Fan messages out to subscribers of their type.

    ``publish`` never raises and never waits for handlers: each handler runs
    as its own task and its failures are logged.
    """

    def __init__(self) -> None:
        self._handlers: dict[MessageType, list[MessageHandler]] = {}
        self._pending: set[asyncio.Task[None]] = set()

    def subscribe(self, message_type: MessageType | str, handler: MessageHandler) -> None:
        self._handlers.setdefault(MessageType(message_type), []).append(handler)

    def unsubscribe(self, message_type: MessageType | str, handler: MessageHandler) -> None:
        handlers = self._handlers.get(MessageType(message_type), [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, message: Message) -> None:
        for handler in list(self._handlers.get(message.type, [])):
            task = asyncio.create_task(self._dispatch(handler, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every handler task started so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @staticmethod
    async def _dispatch(handler: MessageHandler, message: Message) -> None:
        try:
            await handler(message)
        except Exception as exc:
            logger.exception("Message handler failed for '%s': %s", message.type.value, exc)
