from typing import Any

from fastapi import APIRouter, Depends, Request

from launchstats.api.dependencies import get_service
from launchstats.api.limiter import api_rate_limit, limiter
from launchstats.service import LeaderboardService

router = APIRouter(prefix="/api/pool", tags=["pool"])


@router.get("/today")
@limiter.limit(api_rate_limit)
async def today_pool(
    request: Request,
    service: LeaderboardService = Depends(get_service),
) -> dict[str, Any]:
    """User and treasury fee totals over the last day of blocks."""
    return await service.pool_today()
