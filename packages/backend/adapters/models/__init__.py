"""Model service adapter implementations.

Remote: ClaudeService (Anthropic), OpenAIService (OpenAI)
Local: LocalModelService (model file on disk)
"""

from .claude import ClaudeService
from .local import LocalModelService
from .openai import OpenAIService

__all__ = ["ClaudeService", "LocalModelService", "OpenAIService"]
