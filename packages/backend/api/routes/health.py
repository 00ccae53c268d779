"""Health check endpoints."""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> dict:
    """Readiness check: model manager initialized and registry populated."""
    manager = getattr(request.app.state, "model_manager", None)
    registry = getattr(request.app.state, "model_registry", None)
    ready = manager is not None and manager.ready and registry is not None
    return {
        "status": "ready" if ready else "starting",
        "services": {
            "model_manager": "ready" if manager is not None and manager.ready else "not_ready",
            "registered_services": len(registry) if registry is not None else 0,
            "available_services": len(registry.list_available()) if registry is not None else 0,
        },
    }
