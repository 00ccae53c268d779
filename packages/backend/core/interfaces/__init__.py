"""Core interfaces for the model service pattern.

These interfaces define the contract shared by the remote (Anthropic,
OpenAI) and local model backends, plus the catalog records handled by the
model manager.
"""

from .model_manager import (
    DownloadProgress,
    DownloadStatus,
    ModelInfo,
)
from .model_service import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    IModelService,
    ModelProvider,
    format_model_response,
)

__all__ = [
    # Model service
    "IModelService",
    "ModelProvider",
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "format_model_response",
    # Model manager
    "ModelInfo",
    "DownloadProgress",
    "DownloadStatus",
]
