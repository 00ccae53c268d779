"""Tests for the model service API."""

from pathlib import Path

import pytest
from httpx import AsyncClient

from adapters.models import ClaudeService, LocalModelService, OpenAIService


@pytest.fixture
def registry(client):
    from api.main import app

    return app.state.model_registry


@pytest.mark.asyncio
async def test_list_services_grouped(client: AsyncClient, registry, tmp_path: Path):
    registry.register(ClaudeService("claude-3-haiku"))
    registry.register(OpenAIService("gpt-4o"))
    path = tmp_path / "tiny.gguf"
    path.write_bytes(b"x")
    local = LocalModelService("tiny", "Tiny", model_path=path, is_downloaded=True)
    await local.initialize()
    registry.register(local)

    response = await client.get("/api/services")
    assert response.status_code == 200
    data = response.json()

    assert [s["id"] for s in data["services"]] == ["claude-3-haiku", "gpt-4o", "tiny"]
    assert list(data["providers"]) == ["Anthropic", "OpenAI", "Local"]

    available = (await client.get("/api/services", params={"available": True})).json()
    assert [s["id"] for s in available["services"]] == ["tiny"]

    local_only = (await client.get("/api/services", params={"local": True})).json()
    assert [s["id"] for s in local_only["services"]] == ["tiny"]


@pytest.mark.asyncio
async def test_get_service(client: AsyncClient, registry):
    registry.register(OpenAIService("gpt-4"))

    response = await client.get("/api/services/gpt-4")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "GPT-4"
    assert data["provider"] == "OpenAI"
    assert data["max_tokens"] == 8192

    assert (await client.get("/api/services/missing")).status_code == 404


@pytest.mark.asyncio
async def test_chat_with_local_service(client: AsyncClient, registry, tmp_path: Path):
    path = tmp_path / "tiny.gguf"
    path.write_bytes(b"x")
    local = LocalModelService("tiny", "Tiny", model_path=path, is_downloaded=True)
    await local.initialize()
    registry.register(local)

    response = await client.post(
        "/api/services/tiny/chat",
        json={"messages": [{"role": "user", "content": "hello"}]},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["model"] == "tiny"
    assert "placeholder response from local model Tiny" in data["content"]


@pytest.mark.asyncio
async def test_chat_unavailable_service(client: AsyncClient, registry):
    registry.register(ClaudeService("claude-3-haiku"))

    response = await client.post(
        "/api/services/claude-3-haiku/chat",
        json={"messages": [{"role": "user", "content": "hello"}]},
    )

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_chat_validation(client: AsyncClient, registry):
    assert (
        await client.post("/api/services/missing/chat", json={"messages": [{"role": "user", "content": "x"}]})
    ).status_code == 404

    registry.register(OpenAIService("gpt-4o"))
    assert (await client.post("/api/services/gpt-4o/chat", json={"messages": []})).status_code == 422
    assert (
        await client.post(
            "/api/services/gpt-4o/chat",
            json={"messages": [{"role": "user", "content": "x"}], "temperature": 1.5},
        )
    ).status_code == 422
