from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from estimator_api.config import Settings
from estimator_api.dependencies.components import get_app_settings

router = APIRouter(tags=["ops"])


@router.get("/", summary="Readiness acknowledgment")
def root(settings: Settings = Depends(get_app_settings)) -> Dict[str, Any]:
    return {"ok": True, "service": settings.APP_NAME, "api": settings.base_path}


@router.get("/ready", summary="Readiness probe")
def ready(settings: Settings = Depends(get_app_settings)) -> Dict[str, Any]:
    return {
        "ok": True,
        "status": "ready",
        "version": settings.VERSION,
        "env": settings.ENV,
        "audit_backend": settings.AUDIT_BACKEND,
    }
