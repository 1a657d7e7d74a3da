"""Liveness endpoint. Exempt from the API key and the rate limiter."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from latex_service.api.limiter import limiter
from latex_service.config import get_settings
from latex_service.schemas.pydantic import HealthOut

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthOut)
@limiter.exempt
async def health():
    settings = get_settings()
    return HealthOut(
        status="healthy",
        service=settings.service_name,
        timestamp=datetime.now(timezone.utc).isoformat(),
        engine=settings.engine_label,
    )
