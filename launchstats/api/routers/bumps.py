"""Bump map: recent buy activity per watched token."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from launchstats.api.dependencies import get_bump_tracker
from launchstats.api.limiter import api_rate_limit, limiter
from launchstats.bump_tracker import BumpTracker

router = APIRouter(prefix="/api/bumps", tags=["bumps"])


@router.get("")
@limiter.limit(api_rate_limit)
async def bump_map(
    request: Request,
    tracker: BumpTracker = Depends(get_bump_tracker),
    hot_only: bool = Query(False),
) -> dict[str, Any]:
    records = tracker.bump_map
    if hot_only:
        records = {t: r for t, r in records.items() if r.is_hot}
    return {
        "block": tracker.last_processed_block,
        "bumps": {
            token: {**record.to_dict(), "age": tracker.time_since_bump(token)}
            for token, record in records.items()
        },
        "hot": tracker.hot_tokens(),
    }
