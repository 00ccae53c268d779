"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import health, models, services
from core.config import settings
from core.factory import create_factory_from_settings
from core.model_catalog import get_catalog_source
from services.model_manager import ModelManager
from services.registry_sync import RegistrySync

logger = logging.getLogger(__name__)


def _get_version() -> str:
    """Read version from pyproject.toml at startup."""
    try:
        import tomllib
        pyproject_path = Path(__file__).resolve().parents[3] / "pyproject.toml"
        if pyproject_path.exists():
            with open(pyproject_path, "rb") as f:
                data = tomllib.load(f)
                version = data.get("project", {}).get("version")
                if version:
                    return f"v{version}"
    except (OSError, ValueError, KeyError):
        pass
    return "dev"


APP_VERSION = _get_version()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Owns the model manager and the model registry: both are created here,
    exposed on ``app.state`` and torn down on shutdown.
    """
    # Startup
    settings.ensure_directories()

    manager = ModelManager(
        settings.MODELS_DIR,
        catalog_source=get_catalog_source(settings.CATALOG_URL),
        chunk_size=settings.DOWNLOAD_CHUNK_SIZE,
        timeout=settings.REQUEST_TIMEOUT,
        local_step_delay=settings.LOCAL_DOWNLOAD_STEP_DELAY,
    )
    await manager.initialize()

    factory = create_factory_from_settings(settings)
    registry = await factory.build_registry(manager, seed_defaults=settings.SEED_DEFAULT_SERVICES)

    sync = RegistrySync(registry, manager)
    sync.attach()

    app.state.model_manager = manager
    app.state.model_registry = registry

    yield

    # Shutdown
    sync.detach()
    for service in registry:
        try:
            await service.cleanup()
        except Exception:
            logger.exception("Cleanup failed for model service %s", service.id)
    registry.clear()


app = FastAPI(
    title="AI Assistant API",
    description="Model management and chat backend for the AI assistant",
    version=APP_VERSION,
    lifespan=lifespan,
)

# CORS - wide open. This API only binds to 127.0.0.1 and is accessed by
# the local dashboard front end.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router)
app.include_router(models.router, prefix="/api")
app.include_router(services.router, prefix="/api")


@app.get("/api/info")
async def api_info():
    """API info endpoint."""
    return {
        "name": "AI Assistant API",
        "version": APP_VERSION,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "AI Assistant API",
        "version": APP_VERSION,
    }
