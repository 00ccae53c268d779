"""Local model manager.

Discovers model files already on disk, merges them with the catalog of
downloadable models, and drives the download / delete lifecycle:

    not downloaded -> downloading -> completed
                                  -> error

Progress callbacks are broadcast: every callback registered by any
in-flight ``download_model`` call receives every update of every transfer.
Each callback is removed again when the call that registered it settles.
"""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import aiofiles
import aiofiles.os
import httpx

from core import events
from core.exceptions import (
    DownloadCancelledError,
    DownloadError,
    DownloadInProgressError,
    MissingDownloadUrlError,
    ModelAlreadyDownloadedError,
    ModelError,
    ModelNotDownloadedError,
    ModelNotFoundError,
)
from core.interfaces import DownloadProgress, ModelInfo
from core.model_catalog import CatalogSource, StaticCatalogSource
from core.sidecar import SIDECAR_SUFFIX, read_sidecar, remove_sidecar, write_sidecar

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[DownloadProgress], None]

PARTIAL_SUFFIX = ".part"
DEFAULT_CHUNK_SIZE = 256 * 1024


def _percentage(downloaded: int, total: int) -> int:
    """Whole percent complete, floored and capped at 100."""
    if total <= 0:
        return 0
    return min(100, downloaded * 100 // total)


class ModelManager:
    """Catalog and download manager for local model files."""

    def __init__(
        self,
        models_dir: str | Path,
        catalog_source: CatalogSource | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        local_step_delay: float = 0.5,
    ):
        """Initialize the manager.

        Args:
            models_dir: Directory holding model files and their sidecars
            catalog_source: Where the list of downloadable models comes from
            chunk_size: Read size for streamed downloads
            timeout: HTTP timeout in seconds (None = wait indefinitely)
            transport: Optional httpx transport (used by tests)
            local_step_delay: Step delay handed to created LocalModelServices
        """
        self._models_dir = Path(models_dir)
        self._catalog_source = catalog_source or StaticCatalogSource()
        self._chunk_size = chunk_size
        self._timeout = timeout
        self._transport = transport
        self._local_step_delay = local_step_delay

        self._models: dict[str, ModelInfo] = {}
        self._downloads: dict[str, DownloadProgress] = {}
        self._progress_callbacks: list[ProgressCallback] = []
        self._cancel_requested: set[str] = set()
        self._ready = False

    @property
    def models_dir(self) -> Path:
        return self._models_dir

    @property
    def ready(self) -> bool:
        """True once discovery and the catalog fetch have both completed."""
        return self._ready

    async def initialize(self) -> None:
        """Discover local models, then merge in the catalog."""
        self._models_dir.mkdir(parents=True, exist_ok=True)
        await self.discover_local_models()
        await self.fetch_available_models_list()
        self._ready = True
        logger.info(
            "Model manager ready: %d models (%d downloaded) in %s",
            len(self._models),
            len(self.get_local_models()),
            self._models_dir,
        )

    # ── Discovery ──────────────────────────────────────────────────────

    async def discover_local_models(self) -> list[ModelInfo]:
        """Scan the models directory and record every model file found.

        Directories, ``.json`` sidecars, in-flight ``.part`` files and
        files without an extension are skipped. Entries whose file has
        disappeared since the last scan are marked not downloaded.
        """
        self._forget_missing_files()

        if not self._models_dir.is_dir():
            logger.warning("Models directory does not exist: %s", self._models_dir)
            return []

        found: list[ModelInfo] = []
        for entry in sorted(self._models_dir.iterdir()):
            if entry.is_dir():
                continue
            if not entry.suffix or entry.suffix in (SIDECAR_SUFFIX, PARTIAL_SUFFIX):
                continue
            if entry.stem in self._downloads:
                continue

            try:
                info = self._model_info_from_file(entry)
            except ValueError:
                logger.warning("Skipping model file with unusable name: %s", entry.name)
                continue
            self._models[info.id] = info
            found.append(info)

        logger.debug("Discovered %d local models in %s", len(found), self._models_dir)
        return found

    def _model_info_from_file(self, path: Path) -> ModelInfo:
        """Build a ModelInfo from a file's stat, overlaid with its sidecar."""
        stats = path.stat()
        data = {
            "id": path.stem,
            "name": path.stem,
            "provider": "Local",
            "size": stats.st_size,
            "parameters": 0,
            "format": path.suffix.lstrip("."),
            "downloaded": True,
            "path": path,
        }

        try:
            sidecar = read_sidecar(path)
            if sidecar:
                return ModelInfo.model_validate(
                    {**data, **sidecar, "downloaded": True, "path": path}
                )
        except (OSError, ValueError):
            logger.warning("Error reading metadata for %s", path.name, exc_info=True)

        return ModelInfo.model_validate(data)

    def _forget_missing_files(self) -> None:
        for model in self._models.values():
            if model.downloaded and (model.path is None or not model.path.exists()):
                logger.info("Model file for %s is gone, marking as not downloaded", model.id)
                model.downloaded = False
                model.path = None

    # ── Catalog ────────────────────────────────────────────────────────

    async def fetch_available_models_list(self) -> list[ModelInfo]:
        """Merge the catalog into the known models.

        A catalog entry that matches a downloaded local entry is marked
        downloaded with the local path; fields the local entry sets win.
        """
        try:
            remote_models = await self._catalog_source.load()
        except (httpx.HTTPError, ValueError):
            logger.exception("Error fetching available models")
            return self.get_available_models()

        for model in remote_models:
            local = self._models.get(model.id)
            if local is not None and local.downloaded and local.path is not None:
                local_fields = {
                    k: v
                    for k, v in local.model_dump(exclude_unset=True).items()
                    if v is not None
                }
                merged = {**model.model_dump(), **local_fields}
                merged["downloaded"] = True
                merged["path"] = local.path
                self._models[model.id] = ModelInfo.model_validate(merged)
            elif model.id in self._downloads and local is not None:
                # Leave the record an in-flight transfer is updating alone
                continue
            else:
                self._models[model.id] = model

        return self.get_available_models()

    def get_available_models(self) -> list[ModelInfo]:
        """All known models, local and remote."""
        return list(self._models.values())

    def get_local_models(self) -> list[ModelInfo]:
        """Only downloaded models."""
        return [m for m in self._models.values() if m.downloaded]

    def get_model(self, model_id: str) -> ModelInfo | None:
        return self._models.get(model_id)

    def is_model_downloaded(self, model_id: str) -> bool:
        model = self._models.get(model_id)
        return model.downloaded if model else False

    def get_download_progress(self, model_id: str) -> DownloadProgress | None:
        """Snapshot of an active transfer, or None."""
        progress = self._downloads.get(model_id)
        return progress.model_copy() if progress else None

    def list_active_downloads(self) -> list[DownloadProgress]:
        return [p.model_copy() for p in self._downloads.values()]

    # ── Download ───────────────────────────────────────────────────────

    def check_can_download(self, model_id: str) -> ModelInfo:
        """Validate download preconditions without touching the filesystem.

        Returns:
            The catalog entry to download

        Raises:
            ModelNotFoundError, ModelAlreadyDownloadedError,
            MissingDownloadUrlError, DownloadInProgressError
        """
        model = self._models.get(model_id)
        if model is None:
            raise ModelNotFoundError(model_id)
        if model.downloaded:
            raise ModelAlreadyDownloadedError(model_id)
        if not model.download_url:
            raise MissingDownloadUrlError(model_id)
        if model_id in self._downloads:
            raise DownloadInProgressError(model_id)
        return model

    def begin_download(self, model_id: str) -> DownloadProgress:
        """Check preconditions and reserve the transfer slot for ``model_id``.

        The reservation is made before returning, so a second call for the
        same id fails with DownloadInProgressError even if the first
        transfer has not started running yet. Follow with ``run_download``.

        Raises:
            ModelNotFoundError, ModelAlreadyDownloadedError,
            MissingDownloadUrlError, DownloadInProgressError
        """
        model = self.check_can_download(model_id)
        progress = DownloadProgress(model_id=model_id, total_bytes=model.size)
        self._downloads[model_id] = progress
        self._cancel_requested.discard(model_id)
        return progress

    async def download_model(
        self,
        model_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> ModelInfo:
        """Download a catalog model into the models directory.

        Args:
            model_id: Catalog id of the model
            on_progress: Called with a DownloadProgress snapshot on every
                state change; removed once this call settles

        Returns:
            The updated ModelInfo (downloaded, with path)

        Raises:
            ModelNotFoundError: Unknown id
            ModelAlreadyDownloadedError: Model file already present
            MissingDownloadUrlError: Catalog entry has no URL
            DownloadInProgressError: Same id is already being downloaded
            DownloadError: Transfer failed or was cancelled
        """
        self.begin_download(model_id)
        return await self.run_download(model_id, on_progress)

    async def run_download(
        self,
        model_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> ModelInfo:
        """Run a transfer reserved by ``begin_download``."""
        model = self._models.get(model_id)
        progress = self._downloads.get(model_id)
        if model is None or progress is None:
            raise DownloadError(f"No download reserved for model {model_id}")

        if on_progress is not None:
            self._progress_callbacks.append(on_progress)

        output_path = self._models_dir / f"{model_id}.{model.format}"
        part_path = output_path.with_name(output_path.name + PARTIAL_SUFFIX)

        try:
            self._update_progress(progress)
            await aiofiles.os.makedirs(self._models_dir, exist_ok=True)

            logger.info("Downloading model %s from %s", model_id, model.download_url)
            await self._download_file(model.download_url, part_path, progress)
            # A cancel can land after the last chunk
            if model_id in self._cancel_requested:
                raise DownloadCancelledError("Download cancelled")
            part_path.replace(output_path)

            model.downloaded = True
            model.path = output_path
            write_sidecar(model)
        except (Exception, asyncio.CancelledError) as exc:
            self._discard_partial(model, part_path, output_path)

            progress.status = "error"
            progress.error = str(exc) or exc.__class__.__name__
            self._update_progress(progress)

            if isinstance(exc, DownloadCancelledError):
                logger.info("Download of model %s cancelled", model_id)
                raise
            logger.exception("Model download failed: %s", model_id)
            if isinstance(exc, (httpx.HTTPError, OSError)):
                raise DownloadError(f"Failed to download model {model_id}: {exc}") from exc
            raise
        else:
            progress.status = "completed"
            progress.percentage = 100
            self._update_progress(progress)
            logger.info("Model %s downloaded to %s", model_id, output_path)
        finally:
            self._downloads.pop(model_id, None)
            self._cancel_requested.discard(model_id)
            if on_progress is not None and on_progress in self._progress_callbacks:
                self._progress_callbacks.remove(on_progress)

        await events.emit(events.MODEL_DOWNLOADED, model=model)
        return model

    async def _download_file(
        self,
        url: str,
        dest: Path,
        progress: DownloadProgress,
    ) -> None:
        """Stream ``url`` into ``dest``, updating ``progress`` per chunk."""
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            async with client.stream("GET", url) as resp:
                resp.raise_for_status()
                content_length = resp.headers.get("content-length")
                if content_length and content_length.isdigit() and int(content_length) > 0:
                    progress.total_bytes = int(content_length)

                async with aiofiles.open(dest, "wb") as f:
                    async for chunk in resp.aiter_bytes(chunk_size=self._chunk_size):
                        if progress.model_id in self._cancel_requested:
                            raise DownloadCancelledError("Download cancelled")
                        await f.write(chunk)
                        progress.bytes_downloaded += len(chunk)
                        progress.percentage = _percentage(
                            progress.bytes_downloaded, progress.total_bytes
                        )
                        self._update_progress(progress)

    def _discard_partial(self, model: ModelInfo, part_path: Path, output_path: Path) -> None:
        """Remove whatever a failed download left behind."""
        part_path.unlink(missing_ok=True)
        if model.path == output_path:
            # File landed but metadata did not
            output_path.unlink(missing_ok=True)
            remove_sidecar(output_path)
            model.downloaded = False
            model.path = None

    def cancel_download(self, model_id: str) -> bool:
        """Request cancellation of an active transfer.

        The transfer stops before writing its next chunk and goes down the
        error path (partial file removed, status ``error``).

        Returns:
            True if a transfer for ``model_id`` was running
        """
        if model_id not in self._downloads:
            return False
        logger.info("Cancelling download of model %s", model_id)
        self._cancel_requested.add(model_id)
        return True

    def _update_progress(self, progress: DownloadProgress) -> None:
        """Record ``progress`` and broadcast a snapshot to every callback."""
        self._downloads[progress.model_id] = progress
        snapshot = progress.model_copy()
        for callback in list(self._progress_callbacks):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Progress callback failed for %s", progress.model_id)

    # ── Delete ─────────────────────────────────────────────────────────

    async def delete_model(self, model_id: str) -> None:
        """Delete a downloaded model file and its sidecar.

        Raises:
            ModelNotFoundError: Unknown id
            ModelNotDownloadedError: Model is not on disk
            ModelError: The file could not be removed
        """
        model = self._models.get(model_id)
        if model is None:
            raise ModelNotFoundError(model_id)
        if not model.downloaded or model.path is None:
            raise ModelNotDownloadedError(model_id)

        try:
            await aiofiles.os.remove(model.path)
        except FileNotFoundError:
            logger.warning("Model file for %s was already gone: %s", model_id, model.path)
        except OSError as e:
            raise ModelError(f"Failed to delete model {model_id}: {e}") from e

        try:
            remove_sidecar(model.path)
        except OSError:
            logger.warning("Could not remove metadata for %s", model_id, exc_info=True)

        model.downloaded = False
        model.path = None
        logger.info("Deleted model %s", model_id)

        await events.emit(events.MODEL_DELETED, model_id=model_id)

    # ── Services ───────────────────────────────────────────────────────

    def create_model_service(self, model_id: str):
        """Create a LocalModelService for a downloaded model."""
        from adapters.models.local import LocalModelService

        model = self._models.get(model_id)
        if model is None:
            raise ModelNotFoundError(model_id)
        if not model.downloaded or model.path is None:
            raise ModelNotDownloadedError(model_id)

        return LocalModelService(
            model_id=model.id,
            name=model.name,
            model_path=model.path,
            model_size=model.size,
            is_downloaded=True,
            step_delay=self._local_step_delay,
        )
