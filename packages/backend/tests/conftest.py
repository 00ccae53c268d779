"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep settings away from the real user data directory
os.environ.setdefault("ASSISTANT_DATA_DIR", tempfile.mkdtemp(prefix="assistant-test-"))
os.environ.setdefault("ASSISTANT_LOCAL_DOWNLOAD_STEP_DELAY", "0")

from api.main import app
from core import events
from core.model_catalog import StaticCatalogSource
from core.registry import ModelRegistry
from services.model_manager import ModelManager

CATALOG_RECORDS: list[dict] = [
    {
        "id": "m1",
        "name": "Model One",
        "provider": "Test",
        "size": 1000,
        "parameters": 1_000_000,
        "quantization": "Q4_0",
        "format": "bin",
        "downloadUrl": "http://x/m1.bin",
        "description": "First test model",
    },
    {
        "id": "m2",
        "name": "Model Two",
        "provider": "Test",
        "size": 1000,
        "parameters": 2_000_000,
        "format": "bin",
        "downloadUrl": "http://x/m2.bin",
    },
    {
        "id": "no-url",
        "name": "No URL",
        "provider": "Test",
        "size": 10,
        "parameters": 0,
        "format": "gguf",
    },
]


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered as explicit chunks.

    ``before_chunk`` is awaited before every chunk after the first, which
    lets tests interleave transfers or hold one open. ``fail_after``
    raises a ReadError once that many chunks have been sent.
    """

    def __init__(
        self,
        chunks: list[bytes],
        before_chunk: Callable[[], Awaitable[object]] | None = None,
        fail_after: int | None = None,
    ):
        self._chunks = chunks
        self._before_chunk = before_chunk
        self._fail_after = fail_after

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for i, chunk in enumerate(self._chunks):
            if self._fail_after is not None and i >= self._fail_after:
                raise httpx.ReadError("connection reset")
            if i > 0 and self._before_chunk is not None:
                await self._before_chunk()
            yield chunk

    async def aclose(self) -> None:
        pass


@pytest.fixture(autouse=True)
def _clean_event_handlers():
    """Clear all event handlers before and after each test."""
    events.clear()
    yield
    events.clear()


@pytest.fixture
def models_dir(tmp_path: Path) -> Path:
    """Empty models directory."""
    path = tmp_path / "models"
    path.mkdir()
    return path


@pytest.fixture
def remote_files() -> dict[str, httpx.Response | bytes]:
    """URL -> body (bytes) or a full Response served by the mock transport."""
    return {
        "http://x/m1.bin": b"a" * 1000,
        "http://x/m2.bin": b"b" * 1000,
    }


@pytest.fixture
def requested_urls() -> list[str]:
    return []


@pytest.fixture
def transport(remote_files, requested_urls) -> httpx.MockTransport:
    """Mock HTTP transport serving ``remote_files``."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested_urls.append(url)
        body = remote_files.get(url)
        if body is None:
            return httpx.Response(404, text="not found")
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, content=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def manager(models_dir: Path, transport: httpx.MockTransport) -> ModelManager:
    """Uninitialized ModelManager over the test catalog."""
    return ModelManager(
        models_dir,
        catalog_source=StaticCatalogSource(CATALOG_RECORDS),
        chunk_size=500,
        transport=transport,
        local_step_delay=0,
    )


@pytest_asyncio.fixture
async def ready_manager(manager: ModelManager) -> ModelManager:
    """ModelManager after initialize()."""
    await manager.initialize()
    return manager


@pytest_asyncio.fixture
async def client(ready_manager: ModelManager) -> AsyncGenerator[AsyncClient, None]:
    """API client wired to the test manager and an empty registry."""
    registry = ModelRegistry()
    app.state.model_manager = ready_manager
    app.state.model_registry = registry

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    registry.clear()
    del app.state.model_manager
    del app.state.model_registry
