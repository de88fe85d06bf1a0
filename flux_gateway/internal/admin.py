from __future__ import annotations

from fastapi import APIRouter

from flux_gateway.core.types import HEALTH_MODEL_NAME
from flux_gateway.flux.schemas import HealthStatus

router = APIRouter(tags=["internal"])


@router.get("/health")
async def health() -> HealthStatus:
    return HealthStatus(status="ok", model=HEALTH_MODEL_NAME)
