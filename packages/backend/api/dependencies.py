"""FastAPI dependencies for objects owned by the application lifespan."""

from fastapi import Request

from core.registry import ModelRegistry
from services.model_manager import ModelManager


def get_model_manager(request: Request) -> ModelManager:
    """The application's ModelManager."""
    return request.app.state.model_manager


def get_model_registry(request: Request) -> ModelRegistry:
    """The application's ModelRegistry."""
    return request.app.state.model_registry
