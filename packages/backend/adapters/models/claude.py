"""Anthropic Claude model service adapter.

Implements IModelService against the Anthropic Messages API over httpx.
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

CLAUDE_MODELS: dict[str, str] = {
    "claude-3-opus": "Claude 3 Opus",
    "claude-3-sonnet": "Claude 3 Sonnet",
    "claude-3-haiku": "Claude 3 Haiku",
}

DEFAULT_MAX_TOKENS = 4096


class ClaudeService(IModelService):
    """Claude chat service.

    ``initialize()`` only checks that an API key is present and builds the
    HTTP client; a bad key surfaces as a ProviderError on the first call.
    """

    provider = ModelProvider.ANTHROPIC

    def __init__(
        self,
        model_id: str,
        api_key: str | None = None,
        base_url: str = "https://api.anthropic.com",
        api_version: str = "2023-06-01",
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.id = model_id
        self.name = CLAUDE_MODELS.get(model_id, model_id)
        self.description = f"Anthropic {self.name}"
        self.is_available = False
        self.status = "loading"
        self.temperature = 0.7
        self.max_tokens = DEFAULT_MAX_TOKENS

        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        if self._client is not None:
            return

        if not self._api_key:
            logger.warning("No API key provided for Claude service %s", self.id)
            self.is_available = False
            self.status = "error"
            return

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "x-api-key": self._api_key,
                "anthropic-version": self._api_version,
                "content-type": "application/json",
            },
            timeout=self._timeout,
            transport=self._transport,
        )
        self.is_available = True
        self.status = "ready"
        logger.info("Claude service %s initialized", self.id)

    def _build_payload(
        self, messages: list[ChatMessage], options: ChatOptions
    ) -> dict[str, Any]:
        # System text goes in the top-level field, not the message list
        system_parts = [m.content for m in messages if m.role == "system"]
        if options.system_prompt:
            system_parts.insert(0, options.system_prompt)

        payload: dict[str, Any] = {
            "model": options.model or self.id,
            "max_tokens": options.max_tokens or self.max_tokens or DEFAULT_MAX_TOKENS,
            "temperature": options.temperature,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in messages
                if m.role != "system"
            ],
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        if options.top_p is not None:
            payload["top_p"] = options.top_p
        if options.top_k is not None:
            payload["top_k"] = options.top_k
        if options.functions:
            payload["tools"] = [
                {
                    "name": fn["name"],
                    "description": fn.get("description", ""),
                    "input_schema": fn.get("parameters", {"type": "object", "properties": {}}),
                }
                for fn in options.functions
            ]
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
            raise ModelUnavailableError(
                f"Claude service {self.id} is not available. Check your API key."
            )

        payload = self._build_payload(messages, options)

        try:
            response = await self._client.post("/v1/messages", json=payload)
        except httpx.HTTPError as e:
            logger.exception("Error sending message to Claude service %s", self.id)
            raise ProviderError(f"Failed to reach Anthropic API: {e}") from e

        if response.status_code != 200:
            raise ProviderError(
                f"Anthropic API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        return format_model_response(response.json(), self.id)

    async def cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
