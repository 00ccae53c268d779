"""Services layer."""

from .model_manager import ModelManager, ProgressCallback

__all__ = [
    "ModelManager",
    "ProgressCallback",
]
