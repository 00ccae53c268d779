"""Local model management endpoints."""

import asyncio
import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from api.dependencies import get_model_manager
from core.exceptions import (
    DownloadInProgressError,
    MissingDownloadUrlError,
    ModelAlreadyDownloadedError,
    ModelError,
    ModelNotDownloadedError,
    ModelNotFoundError,
)
from core.interfaces import DownloadProgress, ModelInfo
from services.model_manager import ModelManager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/models", tags=["models"])

Manager = Annotated[ModelManager, Depends(get_model_manager)]

# Track running downloads so their results are always retrieved
_download_tasks: dict[str, asyncio.Task] = {}


class ModelListResponse(BaseModel):
    """Response listing all known models."""

    models: list[ModelInfo]


class ActiveDownloadsResponse(BaseModel):
    """Response listing in-flight downloads."""

    downloads: list[DownloadProgress]


def _to_http_error(exc: ModelError) -> HTTPException:
    """Map a model management error onto an HTTP status."""
    if isinstance(exc, ModelNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (ModelAlreadyDownloadedError, DownloadInProgressError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (MissingDownloadUrlError, ModelNotDownloadedError)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.get("", response_model=ModelListResponse)
async def list_models(manager: Manager) -> ModelListResponse:
    """Return every known model, downloaded or not."""
    return ModelListResponse(models=manager.get_available_models())


@router.post("/refresh", response_model=ModelListResponse)
async def refresh_models(manager: Manager) -> ModelListResponse:
    """Rescan the models directory and re-merge the catalog."""
    await manager.discover_local_models()
    await manager.fetch_available_models_list()
    return ModelListResponse(models=manager.get_available_models())


@router.get("/downloads", response_model=ActiveDownloadsResponse)
async def list_downloads(manager: Manager) -> ActiveDownloadsResponse:
    """Return progress for every running download."""
    return ActiveDownloadsResponse(downloads=manager.list_active_downloads())


@router.get("/{model_id}", response_model=ModelInfo)
async def get_model(model_id: str, manager: Manager) -> ModelInfo:
    model = manager.get_model(model_id)
    if model is None:
        raise HTTPException(status_code=404, detail=f"Model {model_id} not found")
    return model


@router.get("/{model_id}/progress", response_model=DownloadProgress)
async def get_progress(model_id: str, manager: Manager) -> DownloadProgress:
    progress = manager.get_download_progress(model_id)
    if progress is None:
        raise HTTPException(status_code=404, detail=f"No active download for {model_id}")
    return progress


def _forget_task(task: asyncio.Task) -> None:
    """Done-callback: drop the entry only if it still points at this task."""
    for model_id, running in list(_download_tasks.items()):
        if running is task:
            del _download_tasks[model_id]


def _retrieve_result(task: asyncio.Task) -> None:
    """Done-callback: consume the task result so failures are logged once."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None and not isinstance(exc, ModelError):
        logger.error("Download task failed unexpectedly", exc_info=exc)


@router.post("/{model_id}/download")
async def download_model(model_id: str, manager: Manager) -> StreamingResponse:
    """Start a download and stream its progress via SSE.

    The transfer keeps running if the client disconnects.
    """
    try:
        manager.begin_download(model_id)
    except ModelError as exc:
        raise _to_http_error(exc) from exc

    queue: asyncio.Queue[DownloadProgress] = asyncio.Queue()

    def on_progress(progress: DownloadProgress) -> None:
        # Callbacks are broadcast; keep only this model's updates
        if progress.model_id == model_id:
            queue.put_nowait(progress)

    task = asyncio.create_task(manager.run_download(model_id, on_progress))
    _download_tasks[model_id] = task
    task.add_done_callback(_forget_task)
    task.add_done_callback(_retrieve_result)

    async def _stream_progress():
        yield _sse({"status": "starting", "model_id": model_id})

        terminal = False
        while not terminal:
            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter not in done:
                getter.cancel()
                # Task settled; flush whatever is still queued
                while not queue.empty() and not terminal:
                    progress = queue.get_nowait()
                    yield _sse(progress.model_dump())
                    terminal = progress.status in ("completed", "error")
                break

            progress = getter.result()
            yield _sse(progress.model_dump())
            terminal = progress.status in ("completed", "error")

        try:
            model = await task
        except Exception as exc:
            if not terminal:
                yield _sse({"status": "error", "model_id": model_id, "error": str(exc)})
            return

        yield _sse({"status": "complete", "model_id": model_id, "path": str(model.path)})

    return StreamingResponse(_stream_progress(), media_type="text/event-stream")


@router.post("/{model_id}/cancel")
async def cancel_download(model_id: str, manager: Manager):
    """Request cancellation of a running download."""
    if not manager.cancel_download(model_id):
        raise HTTPException(status_code=404, detail=f"No active download for {model_id}")
    return {"status": "cancelling", "model_id": model_id}


@router.delete("/{model_id}")
async def delete_model(model_id: str, manager: Manager):
    """Delete a downloaded model file and its metadata."""
    try:
        await manager.delete_model(model_id)
    except ModelError as exc:
        raise _to_http_error(exc) from exc
    return {"status": "deleted", "model_id": model_id}
