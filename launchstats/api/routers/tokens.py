"""Token state endpoint: latest multicall snapshot of factory tokens."""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from launchstats.api.dependencies import get_registry
from launchstats.api.limiter import api_rate_limit, limiter
from launchstats.api.registry import AppRegistry
from launchstats.chain.multicall import summarize

router = APIRouter(prefix="/api/tokens", tags=["tokens"])


@router.get("")
@limiter.limit(api_rate_limit)
async def token_states(
    request: Request,
    registry: AppRegistry = Depends(get_registry),
    active_only: bool = Query(False),
) -> dict[str, Any]:
    states = registry.token_states
    summary = summarize(states)
    if active_only:
        states = {t: s for t, s in states.items() if s.is_active}

    def _row(state) -> dict[str, Any]:
        row = asdict(state)
        for key in ("pls_reserve", "current_price"):
            if row[key] is not None:
                row[key] = str(row[key])
        return row

    return {
        "summary": {**asdict(summary), "total_reserve": str(summary.total_reserve)},
        "tokens": [_row(s) for s in states.values()],
    }
