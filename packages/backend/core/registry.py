"""Model service registry.

Lookup table from model id to a registered model service. One instance is
owned by the application (see ``api.main.lifespan``) and handed to routes
through a dependency; it is cleared on shutdown.
"""

import logging
from collections.abc import Iterator

from core.interfaces import IModelService

logger = logging.getLogger(__name__)


class ModelRegistry:
    """Registry of model services keyed by id.

    Registering an id that is already present replaces the previous entry
    (last write wins). Iteration follows registration order.
    """

    def __init__(self) -> None:
        self._services: dict[str, IModelService] = {}

    def register(self, service: IModelService) -> None:
        """Insert or replace the entry for ``service.id``."""
        if service.id in self._services:
            logger.debug("Replacing registered model service %s", service.id)
        self._services[service.id] = service

    def unregister(self, model_id: str) -> IModelService | None:
        """Remove an entry. Returns the removed service, if any."""
        return self._services.pop(model_id, None)

    def lookup(self, model_id: str) -> IModelService | None:
        """Return the service for ``model_id`` or None."""
        return self._services.get(model_id)

    def list_available(self) -> list[IModelService]:
        return [s for s in self._services.values() if s.is_available]

    def list_local(self) -> list[IModelService]:
        return [s for s in self._services.values() if s.is_local]

    def group_by_provider(self) -> dict[str, list[IModelService]]:
        """Services grouped by provider name, registration order kept per group."""
        groups: dict[str, list[IModelService]] = {}
        for service in self._services.values():
            groups.setdefault(service.provider.value, []).append(service)
        return groups

    def clear(self) -> None:
        """Drop every entry. Used at shutdown and in tests."""
        self._services.clear()

    def __len__(self) -> int:
        return len(self._services)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._services

    def __iter__(self) -> Iterator[IModelService]:
        return iter(list(self._services.values()))
