"""Lookup table from service id to a live service instance."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from autobot.services.base import BaseService

logger = logging.getLogger(__name__)


class ServiceRegistry:
    def __init__(self) -> None:
        self._services: dict[str, BaseService] = {}

    def register(self, service: BaseService) -> None:
        service_id = service.config.id
        if service_id in self._services:
            logger.warning("Replacing registered service: %s", service_id)
        self._services[service_id] = service
        logger.info("Registered service: %s", service_id)

    def unregister(self, service_id: str) -> None:
        if self._services.pop(service_id, None) is not None:
            logger.info("Unregistered service: %s", service_id)

    def get(self, service_id: str) -> BaseService | None:
        return self._services.get(service_id)

    def list(self) -> list[BaseService]:
        return list(self._services.values())

    def has(self, service_id: str) -> bool:
        return service_id in self._services
