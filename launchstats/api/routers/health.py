"""Health check."""

import time

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from launchstats.api.dependencies import get_registry
from launchstats.api.limiter import api_rate_limit, limiter
from launchstats.api.registry import AppRegistry

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_sec: int
    timestamp: int
    last_block: int
    bump_errors: int
    indexer_fallbacks: int


@router.get("/health", response_model=HealthResponse)
@limiter.limit(api_rate_limit)
async def health_check(
    request: Request,
    registry: AppRegistry = Depends(get_registry),
) -> HealthResponse:
    now = time.time()
    tracker = registry.bump_tracker
    service = registry.service
    return HealthResponse(
        status="ok" if tracker is None or tracker.refresh_count > 0 else "starting",
        version=registry.version,
        uptime_sec=int(now - registry.started_at),
        timestamp=int(now),
        last_block=tracker.last_processed_block if tracker else 0,
        bump_errors=tracker.error_count if tracker else 0,
        indexer_fallbacks=service.fallback_count if service else 0,
    )
