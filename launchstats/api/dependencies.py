"""FastAPI dependency injection: registry, service, validated addresses."""

from __future__ import annotations

from fastapi import HTTPException, Path, Request, status

from launchstats.api.registry import AppRegistry
from launchstats.bump_tracker import BumpTracker
from launchstats.chain.events import normalize_address
from launchstats.service import LeaderboardService


def get_registry(request: Request) -> AppRegistry:
    return request.app.state.registry


def get_service(request: Request) -> LeaderboardService:
    service = get_registry(request).service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Leaderboard service not initialised",
        )
    return service


def get_bump_tracker(request: Request) -> BumpTracker:
    tracker = get_registry(request).bump_tracker
    if tracker is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Bump tracker not running",
        )
    return tracker


def valid_address(address: str = Path(..., max_length=42)) -> str:
    """Path parameter validator: lower-cased 0x-prefixed 20-byte hex."""
    try:
        return normalize_address(address)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
