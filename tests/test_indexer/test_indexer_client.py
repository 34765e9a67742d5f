"""Tests for the indexer REST client (httpx MockTransport)."""

import json

import httpx
import pytest

from launchstats.indexer.client import IndexerClient
from launchstats.indexer.exceptions import IndexerApiError, IndexerUnavailableError

BASE_URL = "https://indexer.test/"
USER = "0x" + "ab" * 20


def _client(handler) -> IndexerClient:
    return IndexerClient(
        BASE_URL, max_rps=1000, transport=httpx.MockTransport(handler), retry_delays=[0]
    )


class TestIndexerClient:
    @pytest.mark.asyncio
    async def test_airdrop_leaderboard(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "leaderboard": [
                        {"address": USER, "totalFeesPaid": "1000000000000000000000",
                         "userPoolContribution": "500", "swapCount": 3, "rank": 1}
                    ],
                    "pool": {"date": "2024-01-01", "totalUserFees": "500",
                             "totalTreasuryFees": "600", "distributed": False},
                    "totalPoolContribution": "500",
                    "feeStructure": {"buyTotalBps": 100},
                },
            )

        client = _client(handler)
        board = await client.get_airdrop_leaderboard(limit=10)

        assert seen[0].url.path == "/api/leaderboard/airdrop"
        assert seen[0].url.params["limit"] == "10"
        assert board.leaderboard[0].total_fees_paid == 10**21
        assert board.leaderboard[0].swap_count == 3
        assert board.pool.total_treasury_fees == 600

        dumped = board.model_dump(mode="json", by_alias=True)
        assert dumped["leaderboard"][0]["totalFeesPaid"] == "1000000000000000000000"
        await client.close()

    @pytest.mark.asyncio
    async def test_user_stats_and_rank(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/rank"):
                return httpx.Response(
                    200,
                    json={"rank": 4, "userPoolContribution": "10",
                          "totalPoolContribution": "100", "estimatedShare": 10.0},
                )
            return httpx.Response(
                200, json={"address": USER, "swapCount": 2, "lastSwapTime": 1700000000}
            )

        client = _client(handler)
        stats = await client.get_user_stats(USER)
        rank = await client.get_user_rank(USER)
        assert stats.swap_count == 2
        assert stats.last_swap_time == 1700000000
        assert rank.rank == 4
        assert rank.estimated_share == 10.0
        await client.close()

    @pytest.mark.asyncio
    async def test_roi_leaderboard_realized_pnl_alias(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"leaderboard": [{"address": USER, "realizedPnL": "-250", "roiPercent": -12.5}]},
            )

        client = _client(handler)
        board = await client.get_roi_leaderboard()
        assert board.leaderboard[0].realized_pnl == -250
        assert board.leaderboard[0].roi_percent == -12.5
        await client.close()

    @pytest.mark.asyncio
    async def test_positions(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/api/user/{USER}/positions"
            return httpx.Response(
                200, json={"positions": [{"tokenAddress": "0x" + "01" * 20, "totalBought": "7"}]}
            )

        client = _client(handler)
        positions = await client.get_user_positions(USER)
        assert len(positions) == 1
        assert positions[0].total_bought == 7
        await client.close()

    @pytest.mark.asyncio
    async def test_register_referral_posts_body(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "referrer": "0x1", "referred": USER})

        client = _client(handler)
        result = await client.register_referral("ABCDEF12", USER)

        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"referralCode": "ABCDEF12", "referredAddress": USER}
        assert result.success is True
        await client.close()

    @pytest.mark.asyncio
    async def test_api_error_uses_error_field(self) -> None:
        client = _client(lambda request: httpx.Response(404, json={"error": "Invalid referral code"}))
        with pytest.raises(IndexerApiError, match="404: Invalid referral code") as exc_info:
            await client.get_referral_by_code("NOPE")
        assert exc_info.value.status_code == 404
        await client.close()

    @pytest.mark.asyncio
    async def test_api_error_without_json_body(self) -> None:
        client = _client(lambda request: httpx.Response(500, text="oops"))
        with pytest.raises(IndexerApiError, match="500"):
            await client.get_today_pool()
        await client.close()

    @pytest.mark.asyncio
    async def test_connection_errors_retried_then_unavailable(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(IndexerUnavailableError):
            await client.check_health()
        assert len(calls) == 3
        await client.close()

    @pytest.mark.asyncio
    async def test_transient_error_recovers(self) -> None:
        attempts = iter([True, False])

        def handler(request: httpx.Request) -> httpx.Response:
            if next(attempts):
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"status": "ok", "timestamp": 1})

        client = _client(handler)
        assert (await client.check_health()).status == "ok"
        await client.close()

    @pytest.mark.asyncio
    async def test_token_stats(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "token": {"tokenId": "1", "tokenAddress": "0x" + "02" * 20, "name": "Pepe"},
                    "stats": {"totalSwaps": 5, "buyCount": 3, "sellCount": 2, "totalFees": "99"},
                    "graduated": None,
                },
            )

        client = _client(handler)
        stats = await client.get_token_stats("0x" + "02" * 20)
        assert stats.token.name == "Pepe"
        assert stats.stats.total_fees == 99
        assert stats.graduated is None
        await client.close()
