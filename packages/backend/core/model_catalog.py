"""Catalog of downloadable local models.

The built-in list mirrors the manifest wire shape
``{id, name, provider, size, parameters, quantization, format, downloadUrl,
description}``. A deployment can point ``CATALOG_URL`` at a JSON manifest in
the same shape instead.
"""

import logging
from typing import Any, Protocol

import httpx

from core.interfaces import ModelInfo

logger = logging.getLogger(__name__)

MODEL_CATALOG: list[dict[str, Any]] = [
    {
        "id": "llama-2-7b-chat-q4_0",
        "name": "Llama 2 7B Chat Q4_0",
        "provider": "Meta",
        "size": 3_800_000_000,
        "parameters": 7_000_000_000,
        "quantization": "Q4_0",
        "format": "gguf",
        "downloadUrl": "https://huggingface.co/TheBloke/Llama-2-7B-Chat-GGUF/resolve/main/llama-2-7b-chat.q4_0.gguf",
        "description": "Llama 2 7B Chat model optimized for dialogue use cases, quantized to 4-bit.",
    },
    {
        "id": "mistral-7b-instruct-v0.2-q4_0",
        "name": "Mistral 7B Instruct Q4_0",
        "provider": "Mistral AI",
        "size": 3_700_000_000,
        "parameters": 7_000_000_000,
        "quantization": "Q4_0",
        "format": "gguf",
        "downloadUrl": "https://huggingface.co/TheBloke/Mistral-7B-Instruct-v0.2-GGUF/resolve/main/mistral-7b-instruct-v0.2.q4_0.gguf",
        "description": "Mistral 7B Instruct v0.2 model fine-tuned for instruction following, quantized to 4-bit.",
    },
]


class CatalogSource(Protocol):
    """Anything that can produce the list of remotely available models."""

    async def load(self) -> list[ModelInfo]:
        ...


class StaticCatalogSource:
    """Catalog backed by an in-process list of manifest records."""

    def __init__(self, records: list[dict[str, Any]] | None = None):
        self._records = MODEL_CATALOG if records is None else records

    async def load(self) -> list[ModelInfo]:
        # Fresh objects each call so callers can mutate them freely
        return [ModelInfo.model_validate(dict(record)) for record in self._records]


class ManifestCatalogSource:
    """Catalog fetched from a JSON manifest over HTTP.

    The manifest is either a list of records or ``{"models": [...]}``.
    Records that fail validation are skipped with a warning.
    """

    def __init__(
        self,
        url: str,
        timeout: float | None = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def load(self) -> list[ModelInfo]:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            resp = await client.get(self._url)
            resp.raise_for_status()
            payload = resp.json()

        records = payload.get("models", []) if isinstance(payload, dict) else payload
        models: list[ModelInfo] = []
        for record in records:
            try:
                record = dict(record)
                record["downloaded"] = False
                record.pop("path", None)
                models.append(ModelInfo.model_validate(record))
            except (TypeError, ValueError):
                logger.warning("Skipping invalid catalog record from %s: %r", self._url, record)
        logger.info("Loaded %d catalog entries from %s", len(models), self._url)
        return models


def get_catalog_source(catalog_url: str | None = None) -> CatalogSource:
    """Manifest source when a URL is configured, else the built-in list."""
    if catalog_url:
        return ManifestCatalogSource(catalog_url)
    return StaticCatalogSource()
