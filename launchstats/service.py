"""Aggregate lookups: indexer first, on-chain recomputation when it's down.

Every method returns a JSON-ready payload in the indexer's shape plus a
``source`` key ("indexer" or "chain").
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from launchstats.indexer.client import IndexerClient
from launchstats.indexer.exceptions import IndexerError
from launchstats.leaderboard import LeaderboardAggregator


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


class LeaderboardService:
    def __init__(
        self,
        aggregator: LeaderboardAggregator,
        indexer: IndexerClient | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._indexer = indexer
        self.fallback_count = 0

    async def _from_indexer(self, name: str, call) -> dict[str, Any] | None:
        if self._indexer is None:
            return None
        try:
            payload = _dump(await call())
        except (IndexerError, ValidationError) as e:
            self.fallback_count += 1
            logger.warning(f"[SERVICE] Indexer {name} unavailable, recomputing from chain: {e}")
            return None
        payload["source"] = "indexer"
        return payload

    async def airdrop_leaderboard(self, limit: int = 100) -> dict[str, Any]:
        payload = await self._from_indexer(
            "leaderboard", lambda: self._indexer.get_airdrop_leaderboard(limit)
        )
        if payload is not None:
            return payload
        result = (await self._aggregator.leaderboard()).to_dict()
        result["leaderboard"] = result["leaderboard"][:limit]
        result["source"] = "chain"
        return result

    async def referral_leaderboard(self, limit: int = 100) -> dict[str, Any]:
        payload = await self._from_indexer(
            "referral leaderboard", lambda: self._indexer.get_referral_leaderboard(limit)
        )
        if payload is not None:
            return payload
        entries = await self._aggregator.referral_leaderboard()
        return {
            "leaderboard": [e.to_dict() for e in entries[:limit]],
            "referralBps": self._aggregator.schedule.referral_bps,
            "source": "chain",
        }

    async def user_stats(self, address: str) -> dict[str, Any]:
        payload = await self._from_indexer(
            "user stats", lambda: self._indexer.get_user_stats(address)
        )
        if payload is not None:
            return payload
        result = (await self._aggregator.user_stats(address)).to_dict()
        result["source"] = "chain"
        return result

    async def user_rank(self, address: str) -> dict[str, Any]:
        payload = await self._from_indexer(
            "user rank", lambda: self._indexer.get_user_rank(address)
        )
        if payload is not None:
            return payload
        result = (await self._aggregator.user_rank(address)).to_dict()
        result["source"] = "chain"
        return result

    async def pool_today(self) -> dict[str, Any]:
        payload = await self._from_indexer("pool", lambda: self._indexer.get_today_pool())
        if payload is not None:
            return payload
        result = (await self._aggregator.pool_today()).to_dict()
        result["source"] = "chain"
        return result
