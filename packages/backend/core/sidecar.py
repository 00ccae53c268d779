"""Sidecar metadata files stored next to model files.

A model file ``<dir>/<stem>.<ext>`` may carry ``<dir>/<stem>.json`` with
fields that cannot be read from the file itself (parameter count,
quantization, format, ...).
"""

import json
import logging
from pathlib import Path
from typing import Any

from core.interfaces import ModelInfo

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = ".json"


def sidecar_path(model_path: Path) -> Path:
    """Path of the sidecar file for a model file."""
    return model_path.with_suffix(SIDECAR_SUFFIX)


def read_sidecar(model_path: Path) -> dict[str, Any] | None:
    """Load the sidecar for ``model_path``.

    Returns None when there is no sidecar. Raises ``ValueError`` (including
    ``json.JSONDecodeError``) or ``OSError`` when it exists but cannot be
    read as a JSON object.
    """
    path = sidecar_path(model_path)
    if not path.exists():
        return None
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Sidecar {path.name} is not a JSON object")
    return data


def write_sidecar(info: ModelInfo) -> Path:
    """Write ``info`` next to its model file. Returns the sidecar path."""
    if info.path is None:
        raise ValueError(f"Model {info.id} has no path to write a sidecar for")
    path = sidecar_path(info.path)
    path.write_text(json.dumps(info.to_sidecar(), indent=2), encoding="utf-8")
    return path


def remove_sidecar(model_path: Path) -> bool:
    """Delete the sidecar if present. Returns True if a file was removed."""
    path = sidecar_path(model_path)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
