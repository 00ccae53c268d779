"""Catalog and download records shared by the model manager and the API."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DownloadStatus = Literal["downloading", "verifying", "extracting", "completed", "error"]


class ModelInfo(BaseModel):
    """Catalog entry for a downloadable or discovered model.

    ``downloaded`` is True only while ``path`` points at an existing file.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    provider: str
    size: int = 0
    parameters: int = 0
    quantization: str | None = None
    format: str
    download_url: str | None = Field(default=None, alias="downloadUrl")
    description: str | None = None
    downloaded: bool = False
    path: Path | None = None

    @field_validator("id", "format")
    @classmethod
    def _single_path_component(cls, value: str) -> str:
        # Both end up in the model file name under the models directory
        if not value or value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"{value!r} is not usable in a file name")
        return value

    def to_sidecar(self) -> dict:
        """JSON-ready dict in the manifest wire shape."""
        return self.model_dump(mode="json", by_alias=True)


class DownloadProgress(BaseModel):
    """Transient progress record for one transfer."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    bytes_downloaded: int = 0
    total_bytes: int = 0
    percentage: int = 0
    status: DownloadStatus = "downloading"
    error: str | None = None
