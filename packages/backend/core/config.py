"""Application configuration."""

import os
import sys
from pathlib import Path

from pydantic_settings import BaseSettings


def _default_data_dir() -> Path:
    """Return the platform-specific default data directory."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "AI Assistant"
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA", str(Path.home() / "AppData" / "Local"))
        return Path(base) / "AI Assistant"
    return Path.home() / ".ai-assistant"


class Settings(BaseSettings):
    """Application settings."""

    # API settings
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 52790

    # Data paths
    # Platform-specific data directory
    DATA_DIR: Path = _default_data_dir()
    MODELS_DIR: Path | None = None

    # Remote providers
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com"
    ANTHROPIC_VERSION: str = "2023-06-01"
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str = "https://api.openai.com"

    # Model catalog (None = built-in static catalog)
    CATALOG_URL: str | None = None

    # Downloads
    DOWNLOAD_CHUNK_SIZE: int = 256 * 1024
    REQUEST_TIMEOUT: float | None = None  # None = no timeout

    # Local model placeholder download simulation
    LOCAL_DOWNLOAD_STEP_DELAY: float = 0.5

    # Register the built-in Claude/OpenAI/local services at startup
    SEED_DEFAULT_SERVICES: bool = True

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Set derived paths
        if self.MODELS_DIR is None:
            self.MODELS_DIR = self.DATA_DIR / "models"

    def ensure_directories(self) -> None:
        """Create required directories."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)
        self.MODELS_DIR.mkdir(parents=True, exist_ok=True)

    model_config = {"env_prefix": "ASSISTANT_", "env_file": ".env"}


settings = Settings()
