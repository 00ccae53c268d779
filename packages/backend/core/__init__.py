"""Core configuration, interfaces, registry and service factory.

- Settings: Application configuration
- Interfaces: Contracts shared by the model service backends
- Registry: Lookup table of model services owned by the application
- Factory: Creates model services for each provider
"""

from .config import Settings, settings
from .factory import (
    ModelServiceFactory,
    ServiceConfig,
    create_factory_from_settings,
)
from .registry import ModelRegistry

__all__ = [
    # Configuration
    "Settings",
    "settings",
    # Registry
    "ModelRegistry",
    # Factory
    "ModelServiceFactory",
    "ServiceConfig",
    "create_factory_from_settings",
]
