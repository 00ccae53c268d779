"""Model service interface definitions.

This module defines the contract every chat backend implements, so the
chat layer can talk to Anthropic, OpenAI or a local model file through the
same calls.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

MessageRole = Literal["system", "user", "assistant"]
ModelType = Literal["chat", "completion", "embedding"]
ServiceStatus = Literal["ready", "loading", "error"]


class ModelProvider(str, Enum):
    """Closed set of model service backends."""

    ANTHROPIC = "Anthropic"
    OPENAI = "OpenAI"
    LOCAL = "Local"


@dataclass
class ChatMessage:
    """A message in a chat conversation."""

    role: MessageRole
    content: str


@dataclass
class ChatOptions:
    """Options for a chat request."""

    model: str | None = None  # Override the service's model id
    temperature: float = 0.7
    max_tokens: int | None = None  # None = provider default
    system_prompt: str | None = None
    top_p: float | None = None
    top_k: int | None = None
    functions: list[dict[str, Any]] | None = None


@dataclass
class ChatResponse:
    """Response from a chat request."""

    content: str
    model: str
    usage: dict[str, int] | None = None  # tokens used
    finish_reason: str | None = None

    @property
    def prompt_tokens(self) -> int | None:
        return (self.usage or {}).get("prompt_tokens")

    @property
    def completion_tokens(self) -> int | None:
        return (self.usage or {}).get("completion_tokens")

    @property
    def total_tokens(self) -> int | None:
        return (self.usage or {}).get("total_tokens")


class IModelService(ABC):
    """Interface for a registered model service.

    Implementations:
    - ClaudeService (Anthropic Messages API)
    - OpenAIService (OpenAI Chat Completions API)
    - LocalModelService (model file on disk)

    ``initialize()`` never raises for a missing key, missing file or
    unreachable backend: it sets ``is_available = False`` and
    ``status = "error"`` instead. Callers check ``is_available``.
    """

    id: str
    name: str
    provider: ModelProvider
    is_available: bool = False
    is_local: bool = False
    model_type: ModelType | None = "chat"
    status: ServiceStatus = "loading"
    temperature: float | None = 0.7
    max_tokens: int | None = None
    description: str | None = None

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the service. Idempotent; fails softly into ``status``."""
        ...

    @abstractmethod
    async def send_message(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        """Send a conversation to the model.

        Args:
            messages: Conversation history, oldest first
            options: Sampling options

        Returns:
            ChatResponse with generated content

        Raises:
            ModelUnavailableError: Service is not initialized or unavailable
            ProviderError: Backend call failed
        """
        ...

    async def cleanup(self) -> None:
        """Release clients or backends held by the service."""
        return None

    def describe(self) -> dict[str, Any]:
        """Serializable view of the descriptor."""
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider.value,
            "is_available": self.is_available,
            "is_local": self.is_local,
            "model_type": self.model_type,
            "status": self.status,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "description": self.description,
        }


def format_model_response(raw: Any, model_id: str) -> ChatResponse:
    """Normalize a provider payload into a ChatResponse.

    Accepts a plain string, a ``{"content": ...}`` dict (string or Anthropic
    content blocks), or an OpenAI ``choices`` payload.
    """
    response = ChatResponse(content="", model=model_id)

    if isinstance(raw, str):
        response.content = raw
        return response

    if not isinstance(raw, dict):
        return response

    content = raw.get("content")
    if isinstance(content, str) and content:
        response.content = content
    elif isinstance(content, list):
        response.content = "".join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type", "text") == "text"
        )
        response.finish_reason = raw.get("stop_reason")
    elif raw.get("choices"):
        choice = raw["choices"][0]
        if choice.get("message"):
            response.content = choice["message"].get("content") or ""
        else:
            response.content = choice.get("text") or ""
        response.finish_reason = choice.get("finish_reason")

    if raw.get("model"):
        response.model = raw["model"]

    usage = raw.get("usage")
    if usage:
        # Anthropic reports input/output tokens
        prompt = usage.get("prompt_tokens", usage.get("input_tokens"))
        completion = usage.get("completion_tokens", usage.get("output_tokens"))
        total = usage.get("total_tokens")
        if total is None and prompt is not None and completion is not None:
            total = prompt + completion
        response.usage = {
            k: v
            for k, v in {
                "prompt_tokens": prompt,
                "completion_tokens": completion,
                "total_tokens": total,
            }.items()
            if v is not None
        }

    return response
