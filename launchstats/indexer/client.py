"""Async REST client for the launchpad indexer service."""

import asyncio
from typing import Any

import httpx
from loguru import logger

from launchstats.indexer.exceptions import IndexerApiError, IndexerUnavailableError
from launchstats.indexer.models import (
    AirdropLeaderboard,
    CreatorTokens,
    FeeStructure,
    HealthStatus,
    PoolInfo,
    ReferralCode,
    ReferralLeaderboard,
    ReferralRegistration,
    RoiLeaderboard,
    TokenPosition,
    TokenStats,
    UserRank,
    UserStats,
)
from launchstats.rate_limiter import RateLimiter

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 2.0]


class IndexerClient:
    """Thin wrappers over the indexer's pre-computed aggregates."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        max_rps: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delays: list[float] | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self._rate_limiter = RateLimiter(max_rps)
        self._retry_delays = retry_delays if retry_delays is not None else RETRY_DELAYS

    async def close(self) -> None:
        await self._client.aclose()

    def _delay(self, attempt: int) -> float:
        if not self._retry_delays:
            return 0.0
        return self._retry_delays[min(attempt, len(self._retry_delays) - 1)]

    async def _request(
        self, method: str, path: str, *, params: dict | None = None, json: dict | None = None
    ) -> Any:
        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                response = await self._client.request(method, path, params=params, json=json)
            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    delay = self._delay(attempt)
                    logger.debug(f"[INDEXER] {path} {type(e).__name__}, retrying in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise IndexerUnavailableError(f"{method} {path}: {e}") from e

            if response.is_success:
                return response.json()

            message = response.reason_phrase
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("error"):
                    message = str(body["error"])
            except ValueError:
                pass
            raise IndexerApiError(response.status_code, message)

        raise IndexerUnavailableError(f"{method} {path}: retries exhausted")

    async def _get(self, path: str, **params: Any) -> Any:
        return await self._request("GET", path, params=params or None)

    # Leaderboards

    async def get_airdrop_leaderboard(self, limit: int = 100) -> AirdropLeaderboard:
        data = await self._get("/api/leaderboard/airdrop", limit=limit)
        return AirdropLeaderboard.model_validate(data)

    async def get_referral_leaderboard(self, limit: int = 100) -> ReferralLeaderboard:
        data = await self._get("/api/leaderboard/referral", limit=limit)
        return ReferralLeaderboard.model_validate(data)

    async def get_roi_leaderboard(self, limit: int = 100) -> RoiLeaderboard:
        data = await self._get("/api/leaderboard/roi", limit=limit)
        return RoiLeaderboard.model_validate(data)

    # User

    async def get_user_stats(self, address: str) -> UserStats:
        return UserStats.model_validate(await self._get(f"/api/user/{address}"))

    async def get_user_rank(self, address: str) -> UserRank:
        return UserRank.model_validate(await self._get(f"/api/user/{address}/rank"))

    async def get_user_positions(self, address: str) -> list[TokenPosition]:
        data = await self._get(f"/api/user/{address}/positions")
        return [TokenPosition.model_validate(p) for p in data.get("positions", [])]

    # Referrals

    async def register_referral(self, referral_code: str, referred_address: str) -> ReferralRegistration:
        data = await self._request(
            "POST",
            "/api/referral/register",
            json={"referralCode": referral_code, "referredAddress": referred_address},
        )
        return ReferralRegistration.model_validate(data)

    async def get_referral_by_code(self, code: str) -> ReferralCode:
        return ReferralCode.model_validate(await self._get(f"/api/referral/code/{code}"))

    # Tokens

    async def get_creator_tokens(self, address: str) -> CreatorTokens:
        return CreatorTokens.model_validate(await self._get(f"/api/tokens/creator/{address}"))

    async def get_token_stats(self, address: str) -> TokenStats:
        return TokenStats.model_validate(await self._get(f"/api/token/{address}"))

    # Pool

    async def get_today_pool(self) -> PoolInfo:
        return PoolInfo.model_validate(await self._get("/api/pool/today"))

    async def get_fee_structure(self) -> FeeStructure:
        return FeeStructure.model_validate(await self._get("/api/fees"))

    async def check_health(self) -> HealthStatus:
        return HealthStatus.model_validate(await self._get("/health"))
