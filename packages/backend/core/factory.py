"""Model service factory.

Builds model services for each provider from configuration and seeds the
application's model registry.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from .config import Settings
from .interfaces import IModelService, ModelProvider
from .registry import ModelRegistry

if TYPE_CHECKING:
    from services.model_manager import ModelManager

logger = logging.getLogger(__name__)

DEFAULT_CLAUDE_MODELS = ["claude-3-opus", "claude-3-sonnet", "claude-3-haiku"]
DEFAULT_OPENAI_MODELS = ["gpt-4o", "gpt-4-turbo", "gpt-4", "gpt-3.5-turbo"]

# Placeholder local models shown before any file is downloaded
LOCAL_PLACEHOLDER_MODELS: list[dict] = [
    {"id": "local-deepseek-coder", "name": "DeepSeek Coder", "model_size": 3_500_000_000},
    {"id": "local-qwen", "name": "Qwen 1.5", "model_size": 2_800_000_000},
    {"id": "local-phi3", "name": "Phi-3 Mini", "model_size": 1_500_000_000},
]


@dataclass
class ServiceConfig:
    """Configuration for model service creation."""

    # Anthropic
    anthropic_api_key: str | None = None
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"

    # OpenAI
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com"

    # Shared HTTP
    request_timeout: float | None = None
    transport: httpx.AsyncBaseTransport | None = None

    # Local
    local_step_delay: float = 0.5

    # Seeds
    claude_models: list[str] = field(default_factory=lambda: list(DEFAULT_CLAUDE_MODELS))
    openai_models: list[str] = field(default_factory=lambda: list(DEFAULT_OPENAI_MODELS))
    local_placeholders: list[dict] = field(
        default_factory=lambda: [dict(m) for m in LOCAL_PLACEHOLDER_MODELS]
    )


class ModelServiceFactory:
    """Factory for model service instances.

    Usage:
        from core.config import settings
        from core.factory import create_factory_from_settings

        factory = create_factory_from_settings(settings)
        service = factory.create_service(ModelProvider.OPENAI, "gpt-4o")
        await service.initialize()
    """

    def __init__(self, config: ServiceConfig):
        self._config = config

    @property
    def config(self) -> ServiceConfig:
        return self._config

    def create_service(
        self,
        provider: ModelProvider,
        model_id: str,
        **kwargs,
    ) -> IModelService:
        """Create a service for any provider.

        Args:
            provider: Which backend to use
            model_id: Model identifier
            **kwargs: Local-only options (name, model_path, model_size, is_downloaded)

        Raises:
            ValueError: Unknown provider
        """
        if provider is ModelProvider.ANTHROPIC:
            return self.create_claude_service(model_id)
        if provider is ModelProvider.OPENAI:
            return self.create_openai_service(model_id)
        if provider is ModelProvider.LOCAL:
            return self.create_local_service(model_id, **kwargs)
        raise ValueError(f"Unsupported model provider: {provider!r}")

    def create_claude_service(self, model_id: str) -> IModelService:
        from adapters.models.claude import ClaudeService

        logger.debug("Creating Claude service (model=%s)", model_id)
        return ClaudeService(
            model_id=model_id,
            api_key=self._config.anthropic_api_key,
            base_url=self._config.anthropic_base_url,
            api_version=self._config.anthropic_version,
            timeout=self._config.request_timeout,
            transport=self._config.transport,
        )

    def create_openai_service(self, model_id: str) -> IModelService:
        from adapters.models.openai import OpenAIService

        logger.debug("Creating OpenAI service (model=%s)", model_id)
        return OpenAIService(
            model_id=model_id,
            api_key=self._config.openai_api_key,
            base_url=self._config.openai_base_url,
            timeout=self._config.request_timeout,
            transport=self._config.transport,
        )

    def create_local_service(
        self,
        model_id: str,
        name: str | None = None,
        model_path: str | Path | None = None,
        model_size: int | None = None,
        is_downloaded: bool = False,
    ) -> IModelService:
        from adapters.models.local import LocalModelService

        logger.debug("Creating local model service (model=%s, path=%s)", model_id, model_path)
        return LocalModelService(
            model_id=model_id,
            name=name or model_id,
            model_path=model_path,
            model_size=model_size,
            is_downloaded=is_downloaded,
            step_delay=self._config.local_step_delay,
        )

    def create_default_services(self) -> list[IModelService]:
        """The built-in Claude, OpenAI and placeholder local services."""
        services: list[IModelService] = []
        services.extend(self.create_claude_service(m) for m in self._config.claude_models)
        services.extend(self.create_openai_service(m) for m in self._config.openai_models)
        for placeholder in self._config.local_placeholders:
            services.append(
                self.create_local_service(
                    placeholder["id"],
                    name=placeholder.get("name"),
                    model_size=placeholder.get("model_size"),
                )
            )
        return services

    async def build_registry(
        self,
        manager: "ModelManager | None" = None,
        seed_defaults: bool = True,
    ) -> ModelRegistry:
        """Create a registry and initialize every service in it.

        Args:
            manager: When given, one local service per downloaded model is added
            seed_defaults: Register the built-in remote and placeholder services

        Returns:
            Populated ModelRegistry
        """
        registry = ModelRegistry()

        services: list[IModelService] = []
        if seed_defaults:
            services.extend(self.create_default_services())
        if manager is not None:
            for model in manager.get_local_models():
                services.append(manager.create_model_service(model.id))

        for service in services:
            registry.register(service)
            await service.initialize()

        logger.info(
            "Model registry built: %d services (%d available)",
            len(registry),
            len(registry.list_available()),
        )
        return registry


def create_factory_from_settings(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ModelServiceFactory:
    """Create a ModelServiceFactory from application settings.

    Args:
        settings: Application settings
        transport: Optional httpx transport shared by the remote services

    Returns:
        Configured ModelServiceFactory
    """
    config = ServiceConfig(
        anthropic_api_key=settings.ANTHROPIC_API_KEY,
        anthropic_base_url=settings.ANTHROPIC_BASE_URL,
        anthropic_version=settings.ANTHROPIC_VERSION,
        openai_api_key=settings.OPENAI_API_KEY,
        openai_base_url=settings.OPENAI_BASE_URL,
        request_timeout=settings.REQUEST_TIMEOUT,
        transport=transport,
        local_step_delay=settings.LOCAL_DOWNLOAD_STEP_DELAY,
    )
    return ModelServiceFactory(config)

