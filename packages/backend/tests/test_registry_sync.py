"""Tests for keeping the registry in step with downloads and deletions."""

import pytest

from adapters.models import OpenAIService
from core import events
from core.registry import ModelRegistry
from services.registry_sync import RegistrySync


@pytest.fixture
def registry() -> ModelRegistry:
    return ModelRegistry()


@pytest.fixture
def sync(registry, ready_manager):
    sync = RegistrySync(registry, ready_manager)
    sync.attach()
    yield sync
    sync.detach()


@pytest.mark.asyncio
async def test_download_registers_local_service(sync, registry, ready_manager):
    await ready_manager.download_model("m1")

    service = registry.lookup("m1")
    assert service is not None
    assert service.is_local is True
    assert service.is_available is True
    assert service.status == "ready"
    assert service.name == "Model One"


@pytest.mark.asyncio
async def test_delete_unregisters_local_service(sync, registry, ready_manager):
    await ready_manager.download_model("m1")

    await ready_manager.delete_model("m1")

    assert "m1" not in registry


@pytest.mark.asyncio
async def test_delete_leaves_remote_service_with_same_id(sync, registry, ready_manager):
    await ready_manager.download_model("m1")
    remote = OpenAIService("m1")
    registry.register(remote)

    await ready_manager.delete_model("m1")

    assert registry.lookup("m1") is remote


@pytest.mark.asyncio
async def test_detach_stops_updates(sync, registry, ready_manager):
    sync.detach()

    await ready_manager.download_model("m1")

    assert "m1" not in registry


def test_attach_is_idempotent(registry, manager):
    sync = RegistrySync(registry, manager)
    sync.attach()
    sync.attach()

    assert events._handlers[events.MODEL_DOWNLOADED] == [sync.on_model_downloaded]
    sync.detach()
