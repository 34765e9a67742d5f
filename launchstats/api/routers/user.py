"""Per-user endpoints: stats and leaderboard rank."""

from typing import Any

from fastapi import APIRouter, Depends, Request

from launchstats.api.dependencies import get_service, valid_address
from launchstats.api.limiter import api_rate_limit, limiter
from launchstats.service import LeaderboardService

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/{address}")
@limiter.limit(api_rate_limit)
async def user_stats(
    request: Request,
    address: str = Depends(valid_address),
    service: LeaderboardService = Depends(get_service),
) -> dict[str, Any]:
    return await service.user_stats(address)


@router.get("/{address}/rank")
@limiter.limit(api_rate_limit)
async def user_rank(
    request: Request,
    address: str = Depends(valid_address),
    service: LeaderboardService = Depends(get_service),
) -> dict[str, Any]:
    """Rank over the full ranking (0 when the address never traded)."""
    return await service.user_rank(address)
