"""Leaderboard endpoints: airdrop (fee contribution) and referral rankings."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from launchstats.api.dependencies import get_service
from launchstats.api.limiter import api_rate_limit, limiter
from launchstats.service import LeaderboardService

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("/airdrop")
@limiter.limit(api_rate_limit)
async def airdrop_leaderboard(
    request: Request,
    service: LeaderboardService = Depends(get_service),
    limit: int = Query(100, ge=1, le=100),
) -> dict[str, Any]:
    """Top traders by user-pool fee contribution."""
    return await service.airdrop_leaderboard(limit)


@router.get("/referral")
@limiter.limit(api_rate_limit)
async def referral_leaderboard(
    request: Request,
    service: LeaderboardService = Depends(get_service),
    limit: int = Query(100, ge=1, le=100),
) -> dict[str, Any]:
    return await service.referral_leaderboard(limit)
