"""Keeps the model registry in step with the model manager's catalog.

Subscribes to the manager's download/delete events: a finished download
registers a LocalModelService for the file, a deletion removes it.
"""

import logging

from core import events
from core.interfaces import ModelInfo
from core.registry import ModelRegistry
from services.model_manager import ModelManager

logger = logging.getLogger(__name__)


class RegistrySync:
    """Event-driven bridge between ModelManager and ModelRegistry."""

    def __init__(self, registry: ModelRegistry, manager: ModelManager):
        self._registry = registry
        self._manager = manager
        self._attached = False

    def attach(self) -> None:
        if self._attached:
            return
        events.on(events.MODEL_DOWNLOADED, self.on_model_downloaded)
        events.on(events.MODEL_DELETED, self.on_model_deleted)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        events.off(events.MODEL_DOWNLOADED, self.on_model_downloaded)
        events.off(events.MODEL_DELETED, self.on_model_deleted)
        self._attached = False

    async def on_model_downloaded(self, model: ModelInfo, **kwargs) -> None:
        service = self._manager.create_model_service(model.id)
        await service.initialize()
        self._registry.register(service)
        logger.info("Registered local model service %s", model.id)

    async def on_model_deleted(self, model_id: str, **kwargs) -> None:
        service = self._registry.lookup(model_id)
        if service is None or not service.is_local:
            return
        self._registry.unregister(model_id)
        await service.cleanup()
        logger.info("Unregistered local model service %s", model_id)
