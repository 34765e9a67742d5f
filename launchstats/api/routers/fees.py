"""Static fee structure, contract addresses and airdrop schedule."""

from typing import Any

from fastapi import APIRouter, Depends, Request

from launchstats.api.dependencies import get_registry
from launchstats.api.limiter import api_rate_limit, limiter
from launchstats.api.registry import AppRegistry
from launchstats.fees import FeeSchedule

router = APIRouter(prefix="/api", tags=["fees"])

# Liquidity split at graduation, after the treasury fee
GRADUATION_LIQUIDITY = {"pulseXV2": "10%", "paisleyV2": "10%", "burned": "80%"}


def _pct(bps: int) -> str:
    return f"{bps / 100:g}%"


def fee_structure(schedule: FeeSchedule) -> dict[str, Any]:
    return {
        "buy": {
            "total": _pct(schedule.buy_total_bps),
            "totalBps": schedule.buy_total_bps,
            "breakdown": {
                "userPool": _pct(schedule.buy_user_bps),
                "userPoolBps": schedule.buy_user_bps,
                "treasury": _pct(schedule.buy_treasury_bps),
                "treasuryBps": schedule.buy_treasury_bps,
            },
        },
        "sell": {
            "total": _pct(schedule.sell_total_bps),
            "totalBps": schedule.sell_total_bps,
            "breakdown": {
                "userPool": _pct(schedule.sell_user_bps),
                "userPoolBps": schedule.sell_user_bps,
                "treasury": _pct(schedule.sell_treasury_bps),
                "treasuryBps": schedule.sell_treasury_bps,
            },
        },
        "graduation": {
            "treasuryFee": _pct(schedule.graduation_fee_bps),
            "treasuryFeeBps": schedule.graduation_fee_bps,
            "liquidityDistribution": GRADUATION_LIQUIDITY,
        },
        "referral": {
            "rate": _pct(schedule.referral_bps),
            "rateBps": schedule.referral_bps,
            "note": "Taken from treasury portion, paid to referrer",
        },
    }


@router.get("/fees")
@limiter.limit(api_rate_limit)
async def fees(
    request: Request,
    registry: AppRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return {
        "fees": fee_structure(registry.schedule),
        "contracts": {
            "factory": registry.contracts.factory,
            "treasury": registry.contracts.treasury,
            "bondingCurve": registry.contracts.bonding_curve,
        },
        "airdrop": {
            "schedule": "Daily at 00:00 UTC",
            "distribution": "Top 100 traders by volume receive proportional share of user pool",
            "eligibility": "All traders who paid fees during the epoch",
        },
    }
