# Health router.
# Created: 2026-10-12

from __future__ import annotations

from fastapi import APIRouter, Depends

from devflow import __version__
from devflow.api.deps import get_app_settings
from devflow.api.schemas import HealthStatus
from devflow.config import Settings

router = APIRouter(tags=["Health"])


@router.get("/", response_model=HealthStatus)
async def get_health_status(settings: Settings = Depends(get_app_settings)):
    """Liveness probe for the hosting platform. No side effects."""
    return HealthStatus(version=__version__, model=settings.groq_model)
