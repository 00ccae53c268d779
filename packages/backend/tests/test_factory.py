"""Tests for the model service factory."""

import pytest

from adapters.models import ClaudeService, LocalModelService, OpenAIService
from core.config import Settings
from core.factory import (
    DEFAULT_CLAUDE_MODELS,
    DEFAULT_OPENAI_MODELS,
    LOCAL_PLACEHOLDER_MODELS,
    ModelServiceFactory,
    ServiceConfig,
    create_factory_from_settings,
)
from core.interfaces import ModelProvider


@pytest.fixture
def factory() -> ModelServiceFactory:
    return ModelServiceFactory(ServiceConfig(local_step_delay=0))


def test_create_service_dispatches_by_provider(factory):
    assert isinstance(factory.create_service(ModelProvider.ANTHROPIC, "claude-3-haiku"), ClaudeService)
    assert isinstance(factory.create_service(ModelProvider.OPENAI, "gpt-4o"), OpenAIService)

    local = factory.create_service(ModelProvider.LOCAL, "local-qwen", name="Qwen 1.5")
    assert isinstance(local, LocalModelService)
    assert local.name == "Qwen 1.5"
    assert local.is_available is False


def test_create_service_rejects_unknown_provider(factory):
    with pytest.raises(ValueError):
        factory.create_service("Gemini", "gemini-pro")


def test_default_services(factory):
    services = factory.create_default_services()

    ids = [s.id for s in services]
    expected = (
        DEFAULT_CLAUDE_MODELS
        + DEFAULT_OPENAI_MODELS
        + [m["id"] for m in LOCAL_PLACEHOLDER_MODELS]
    )
    assert ids == expected


@pytest.mark.asyncio
async def test_build_registry_without_keys(factory):
    registry = await factory.build_registry()

    assert len(registry) == 10
    # No API keys and no files: nothing is usable yet
    assert registry.list_available() == []
    assert [s.id for s in registry.list_local()] == [m["id"] for m in LOCAL_PLACEHOLDER_MODELS]
    assert list(registry.group_by_provider()) == ["Anthropic", "OpenAI", "Local"]
    assert all(s.status == "error" for s in registry)


@pytest.mark.asyncio
async def test_build_registry_with_keys():
    factory = ModelServiceFactory(ServiceConfig(anthropic_api_key="a", openai_api_key="o"))

    registry = await factory.build_registry()

    available = {s.id for s in registry.list_available()}
    assert available == set(DEFAULT_CLAUDE_MODELS + DEFAULT_OPENAI_MODELS)
    for service in registry:
        await service.cleanup()


@pytest.mark.asyncio
async def test_build_registry_adds_downloaded_models(factory, manager, models_dir):
    (models_dir / "tiny.gguf").write_bytes(b"x")
    await manager.initialize()

    registry = await factory.build_registry(manager, seed_defaults=False)

    assert [s.id for s in registry] == ["tiny"]
    tiny = registry.lookup("tiny")
    assert tiny.is_local is True
    assert tiny.is_available is True
    assert tiny.status == "ready"


def test_factory_from_settings():
    settings = Settings(ANTHROPIC_API_KEY="a", OPENAI_BASE_URL="http://openai.test")

    factory = create_factory_from_settings(settings)

    assert factory.config.anthropic_api_key == "a"
    assert factory.config.openai_base_url == "http://openai.test"
    assert factory.config.local_step_delay == settings.LOCAL_DOWNLOAD_STEP_DELAY
