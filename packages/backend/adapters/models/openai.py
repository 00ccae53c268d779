"""OpenAI model service adapter.

Implements IModelService against the OpenAI Chat Completions API over httpx.
"""

import logging
from typing import Any

import httpx

from core.exceptions import ModelUnavailableError, ProviderError
from core.interfaces import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    IModelService,
    ModelProvider,
    format_model_response,
)

logger = logging.getLogger(__name__)

# model id -> (display name, description, max output tokens)
OPENAI_MODELS: dict[str, tuple[str, str, int]] = {
    "gpt-4o": ("GPT-4o", "OpenAI's most capable model with vision and audio abilities", 4096),
    "gpt-4-turbo": ("GPT-4 Turbo", "Fast and powerful model with a large context window", 4096),
    "gpt-4": ("GPT-4", "OpenAI's high-capability model with improved reasoning", 8192),
    "gpt-3.5-turbo": ("GPT-3.5 Turbo", "Fast and cost-effective model for general tasks", 4096),
}


class OpenAIService(IModelService):
    """OpenAI chat service."""

    provider = ModelProvider.OPENAI

    def __init__(
        self,
        model_id: str,
        api_key: str | None = None,
        base_url: str = "https://api.openai.com",
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.id = model_id
        self.name, self.description, self.max_tokens = OPENAI_MODELS.get(
            model_id, (model_id, "OpenAI model", 4096)
        )
        self.is_available = False
        self.status = "loading"
        self.temperature = 0.7

        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        if self._client is not None:
            return

        if not self._api_key:
            logger.warning("No API key provided for OpenAI service %s", self.id)
            self.is_available = False
            self.status = "error"
            return

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
            transport=self._transport,
        )
        self.is_available = True
        self.status = "ready"
        logger.info("OpenAI service %s initialized", self.id)

    def _build_payload(
        self, messages: list[ChatMessage], options: ChatOptions
    ) -> dict[str, Any]:
        wire_messages = [{"role": m.role, "content": m.content} for m in messages]
        if options.system_prompt:
            wire_messages.insert(0, {"role": "system", "content": options.system_prompt})

        payload: dict[str, Any] = {
            "model": options.model or self.id,
            "max_tokens": options.max_tokens or self.max_tokens,
            "temperature": options.temperature,
            "messages": wire_messages,
        }
        if options.top_p is not None:
            payload["top_p"] = options.top_p
        if options.functions:
            payload["functions"] = options.functions
        return payload

    async def send_message(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        options = options or ChatOptions()

        if self._client is None:
            await self.initialize()
        if self._client is None or not self.is_available:
            raise ModelUnavailableError(f"OpenAI service {self.id} is not available")

        payload = self._build_payload(messages, options)

        try:
            response = await self._client.post("/v1/chat/completions", json=payload)
        except httpx.HTTPError as e:
            logger.exception("Error sending message to OpenAI service %s", self.id)
            raise ProviderError(f"Failed to reach OpenAI API: {e}") from e

        if response.status_code != 200:
            raise ProviderError(
                f"OpenAI API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        return format_model_response(response.json(), self.id)

    async def cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
