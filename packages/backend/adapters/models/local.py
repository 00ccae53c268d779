"""Local model file service adapter.

Wraps one model file on disk as an IModelService. There is no inference
backend yet: ``send_message`` answers with a placeholder naming the model,
and ``download_model`` only simulates progress for the UI.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from core.exceptions import ModelUnavailableError
from core.interfaces import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    IModelService,
    ModelProvider,
)
from core.sidecar import read_sidecar

logger = logging.getLogger(__name__)

SIMULATED_DOWNLOAD_STEPS = 10


class LocalModelService(IModelService):
    """Model service for a local model file."""

    provider = ModelProvider.LOCAL
    is_local = True

    def __init__(
        self,
        model_id: str,
        name: str,
        model_path: str | Path | None = None,
        model_size: int | None = None,
        is_downloaded: bool = False,
        step_delay: float = 0.5,
    ):
        self.id = model_id
        self.name = name
        self.model_path = Path(model_path) if model_path else None
        self.model_size = model_size
        self.description = f"Local {name} model"
        self.temperature = 0.7
        self.max_tokens = 2048
        self.top_p = 0.9

        self.is_available = is_downloaded
        self.status = "ready" if is_downloaded else "loading"
        self.download_progress = 100 if is_downloaded else 0

        self._step_delay = step_delay
        self._initialized = False
        self._metadata: dict[str, Any] | None = None
        self._backend_running = False
        self._cancel_requested = False

    @property
    def metadata(self) -> dict[str, Any] | None:
        return self._metadata

    async def initialize(self) -> None:
        if self._initialized:
            return

        if not (self.is_available and self.model_path):
            logger.warning("Local model %s is not available for initialization", self.id)
            self.status = "error"
            self._initialized = True
            return

        try:
            self._metadata = self._read_metadata()
        except (OSError, ValueError):
            logger.warning("Failed to initialize local model service %s", self.id, exc_info=True)
            self.is_available = False
            self.status = "error"
            self._initialized = True
            return

        await self._start_backend()
        self.status = "ready"
        self._initialized = True
        logger.info("Initialized local model %s (%s)", self.id, self.model_path.name)

    def _read_metadata(self) -> dict[str, Any]:
        """Stat-derived metadata overlaid with the sidecar, if any."""
        path = self.model_path
        stats = path.stat()
        metadata: dict[str, Any] = {
            "path": str(path),
            "size": stats.st_size,
            "parameters": 0,
            "format": path.suffix.lstrip("."),
            "downloaded": True,
        }
        sidecar = read_sidecar(path)
        if sidecar:
            metadata.update(sidecar)
            metadata["path"] = str(path)
            metadata["downloaded"] = True
        if self.model_size is None:
            self.model_size = metadata["size"]
        return metadata

    async def _start_backend(self) -> None:
        # Placeholder until a local inference runtime is wired in
        logger.info("Starting inference backend for model: %s", self.model_path)
        self._backend_running = True

    async def send_message(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        if not self.is_available:
            raise ModelUnavailableError(
                f"Local model {self.id} is not available. Please download it first."
            )

        logger.debug("Sending %d messages to local model %s", len(messages), self.id)
        return ChatResponse(
            content=(
                f"This is a placeholder response from local model {self.name}. "
                "In a real implementation, this would be generated by the local model."
            ),
            model=self.id,
        )

    async def download_model(self) -> bool:
        """Simulate a download in fixed 10% steps.

        Returns True when the simulation completes (or the model is already
        present) and False when it was cancelled.
        """
        if self.is_available:
            logger.info("Model %s is already downloaded", self.id)
            return True

        logger.info("Downloading model %s...", self.id)
        self._cancel_requested = False
        step = 100 // SIMULATED_DOWNLOAD_STEPS
        for i in range(1, SIMULATED_DOWNLOAD_STEPS + 1):
            await asyncio.sleep(self._step_delay)
            if self._cancel_requested:
                logger.info("Download of model %s cancelled", self.id)
                self.download_progress = 0
                self.status = "loading"
                return False
            self.download_progress = i * step

        self.is_available = True
        self.status = "ready"
        if self.model_path and self.model_path.exists():
            try:
                self._metadata = self._read_metadata()
            except (OSError, ValueError):
                logger.warning("Could not read metadata for model %s", self.id, exc_info=True)
        logger.info("Model %s downloaded successfully", self.id)
        return True

    async def cancel_download(self) -> None:
        """Stop a running simulated download and reset its progress."""
        if not self.is_available:
            logger.info("Cancelling download of model %s", self.id)
            self._cancel_requested = True
            self.download_progress = 0
            self.status = "loading"

    async def get_model_details(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider.value,
            "is_available": self.is_available,
            "model_size": self.model_size,
            "download_progress": self.download_progress,
            "model_path": str(self.model_path) if self.model_path else None,
            "metadata": self._metadata,
        }

    async def cleanup(self) -> None:
        if self._backend_running:
            logger.info("Stopping inference backend for model: %s", self.name)
            self._backend_running = False
