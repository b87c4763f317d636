"""System health endpoints for frontend polling."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...api.dependencies import get_run_store, get_settings
from ...config import Settings
from ...domain.runlog import RunLogStore

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/healthz")
def healthcheck(
    settings: Settings = Depends(get_settings),
    store: RunLogStore = Depends(get_run_store),
) -> dict[str, Any]:
    """Return coarse-grained backend readiness information."""

    feature_flags: Dict[str, Any] = settings.features or {}

    return {
        "status": "ok",
        "environment": settings.environment,
        "storage": settings.storage.backend,
        "entryCount": len(store),
        "featureFlags": feature_flags,
    }
