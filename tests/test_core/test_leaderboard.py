"""Tests for the fee-contribution leaderboard aggregator."""

import pytest

from launchstats.cache import TTLCache
from launchstats.chain.events import TradeEvent
from launchstats.clock import FixedClock
from launchstats.fees import FeeSchedule, TradeSide
from launchstats.leaderboard import (
    ContributorTotals,
    LeaderboardAggregator,
    accumulate_fees,
    estimated_share,
    rank_contributors,
    referral_code,
)
from tests.fakes import FACTORY, NOW, FakeChainClient, addr, buy_log, created_log, sell_log

TOKEN_1 = addr(0x1001)
TOKEN_2 = addr(0x1002)
TOKEN_3 = addr(0x1003)  # created, never traded
TRADER_A = addr(0xA)
TRADER_B = addr(0xB)
TRADER_C = addr(0xC)
REFERRER = addr(0xFEED)
CREATOR = addr(0xC0DE)


def _launchpad_chain(**kwargs) -> FakeChainClient:
    """Three tokens; A buys twice, B sells once, C buys once with a referrer."""
    return FakeChainClient(
        [
            created_log(TOKEN_1, CREATOR, block=10),
            created_log(TOKEN_2, CREATOR, block=20),
            created_log(TOKEN_3, CREATOR, block=30),
            buy_log(TOKEN_1, TRADER_A, 1000, block=900),
            buy_log(TOKEN_1, TRADER_A, 2000, block=910),
            sell_log(TOKEN_2, TRADER_B, 10_000, block=920),
            buy_log(TOKEN_2, TRADER_C, 4000, block=930, referrer=REFERRER),
        ],
        block_number=1000,
        block_timestamps={910: NOW - 270, 930: NOW - 210},
        **kwargs,
    )


def _aggregator(chain: FakeChainClient, clock: FixedClock, **kwargs) -> LeaderboardAggregator:
    return LeaderboardAggregator(
        chain,
        factory_address=FACTORY,
        cache=TTLCache(60, clock),
        clock=clock,
        **kwargs,
    )


def _trade(actor: str, amount: int, side: TradeSide = TradeSide.BUY) -> TradeEvent:
    return TradeEvent(
        token=TOKEN_1, actor=actor, side=side,
        native_amount=amount, counter_amount=1, block_number=1,
    )


# ── Pure aggregation ─────────────────────────────────────────────────


class TestAccumulation:
    def test_two_buys_accumulate(self) -> None:
        totals = accumulate_fees([_trade(TRADER_A, 1000), _trade(TRADER_A, 2000)])
        assert totals[TRADER_A].user_pool == 15
        assert totals[TRADER_A].total_fees == 30
        assert totals[TRADER_A].swap_count == 2
        assert totals[TRADER_A].buy_volume == 3000

    def test_sells_tracked_separately(self) -> None:
        totals = accumulate_fees([_trade(TRADER_B, 10_000, TradeSide.SELL)])
        assert totals[TRADER_B].sell_volume == 10_000
        assert totals[TRADER_B].treasury_fees == 60

    def test_custom_schedule_applied(self) -> None:
        schedule = FeeSchedule(buy_total_bps=200, buy_user_bps=100, buy_treasury_bps=100)
        totals = accumulate_fees([_trade(TRADER_A, 1000)], schedule)
        assert totals[TRADER_A].user_pool == 10

    def test_rank_sorted_by_user_pool(self) -> None:
        totals = {
            TRADER_A: ContributorTotals(user_pool=15),
            TRADER_B: ContributorTotals(user_pool=50),
            TRADER_C: ContributorTotals(user_pool=20),
        }
        entries = rank_contributors(totals)
        assert [e.address for e in entries] == [TRADER_B, TRADER_C, TRADER_A]
        assert [e.rank for e in entries] == [1, 2, 3]

    def test_ties_broken_by_address(self) -> None:
        totals = {
            TRADER_C: ContributorTotals(user_pool=10),
            TRADER_A: ContributorTotals(user_pool=10),
        }
        assert [e.address for e in rank_contributors(totals)] == [TRADER_A, TRADER_C]

    def test_rank_truncated_to_top_n(self) -> None:
        totals = {addr(i): ContributorTotals(user_pool=i) for i in range(1, 151)}
        entries = rank_contributors(totals)
        assert len(entries) == 100
        assert [e.rank for e in entries] == list(range(1, 101))
        assert entries[0].address == addr(150)
        assert len(rank_contributors(totals, top_n=None)) == 150

    def test_empty_ranking(self) -> None:
        assert rank_contributors({}) == []

    def test_estimated_share_truncates(self) -> None:
        assert estimated_share(15, 85) == 17.64
        assert estimated_share(1, 3) == 33.33
        assert estimated_share(5, 0) == 0.0

    def test_referral_code(self) -> None:
        assert referral_code("0xabcdef1234567890abcdef1234567890abcdef12") == "ABCDEF12"


# ── Aggregator ───────────────────────────────────────────────────────


class TestLeaderboardAggregator:
    @pytest.mark.asyncio
    async def test_leaderboard_ranks_traders(self, clock: FixedClock) -> None:
        result = await _aggregator(_launchpad_chain(), clock).leaderboard()

        assert [e.address for e in result.entries] == [TRADER_B, TRADER_C, TRADER_A]
        assert [e.rank for e in result.entries] == [1, 2, 3]
        a = result.entries[2]
        assert (a.user_pool_contribution, a.total_fees_paid, a.swap_count) == (15, 30, 2)
        assert result.total_pool_contribution == 85
        assert result.pool.total_treasury_fees == 95

    @pytest.mark.asyncio
    async def test_untraded_token_counted_but_absent(self, clock: FixedClock) -> None:
        result = await _aggregator(_launchpad_chain(), clock).leaderboard()
        assert result.token_count == 3
        assert result.failed_token_count == 0
        assert len(result.entries) == 3

    @pytest.mark.asyncio
    async def test_failed_token_is_counted(self, clock: FixedClock) -> None:
        chain = _launchpad_chain(failing=[TOKEN_2])
        result = await _aggregator(chain, clock).leaderboard()

        assert result.failed_token_count == 1
        assert result.token_count == 3
        assert [e.address for e in result.entries] == [TRADER_A]

    @pytest.mark.asyncio
    async def test_to_dict_payload(self, clock: FixedClock) -> None:
        payload = (await _aggregator(_launchpad_chain(), clock).leaderboard()).to_dict()

        assert payload["leaderboard"][0] == {
            "address": TRADER_B,
            "totalFeesPaid": "110",
            "userPoolContribution": "50",
            "swapCount": 1,
            "rank": 1,
        }
        assert payload["totalPoolContribution"] == "85"
        assert payload["feeStructure"]["sellTotalBps"] == 110
        assert payload["blockRange"] == {"from": "0", "to": "1000"}
        assert payload["pool"]["date"] == "2023-11-14"

    @pytest.mark.asyncio
    async def test_top_n_setting(self, clock: FixedClock) -> None:
        result = await _aggregator(_launchpad_chain(), clock, top_n=2).leaderboard()
        assert [e.rank for e in result.entries] == [1, 2]

    @pytest.mark.asyncio
    async def test_workers_must_be_positive(self, clock: FixedClock) -> None:
        with pytest.raises(ValueError):
            _aggregator(FakeChainClient(), clock, workers=0)

    @pytest.mark.asyncio
    async def test_single_worker_still_scans_every_token(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        scan = await _aggregator(chain, clock, workers=1).scan()
        assert {r.token for r in scan.results} == {TOKEN_1, TOKEN_2, TOKEN_3}
        assert len(scan.events) == 4

    @pytest.mark.asyncio
    async def test_token_enumeration_ignores_other_contracts(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        chain.logs.append(created_log(addr(0x9999), CREATOR, factory=addr(0x1234)))
        tokens = await _aggregator(chain, clock).token_addresses()
        assert tokens == [TOKEN_1, TOKEN_2, TOKEN_3]


class TestLeaderboardCaching:
    @pytest.mark.asyncio
    async def test_cached_within_ttl(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        aggregator = _aggregator(chain, clock)

        first = await aggregator.leaderboard()
        calls = len(chain.get_logs_calls)
        clock.advance(30)
        second = await aggregator.leaderboard()

        assert second == first
        assert len(chain.get_logs_calls) == calls

    @pytest.mark.asyncio
    async def test_result_never_outlives_the_scan_ttl(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        aggregator = _aggregator(chain, clock)

        await aggregator.user_rank(TRADER_A)  # scan stored at t=0
        clock.advance(59)
        await aggregator.leaderboard()
        chain.logs.append(buy_log(TOKEN_1, TRADER_B, 10**9, block=950))
        clock.advance(59)

        result = await aggregator.leaderboard()
        assert result.entries[0].address == TRADER_B

    @pytest.mark.asyncio
    async def test_recomputed_after_ttl(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        aggregator = _aggregator(chain, clock)

        await aggregator.leaderboard()
        chain.logs.append(buy_log(TOKEN_1, TRADER_A, 100_000, block=950))
        clock.advance(61)
        result = await aggregator.leaderboard()

        assert result.entries[0].address == TRADER_A

    @pytest.mark.asyncio
    async def test_stale_result_served_when_rpc_down(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        aggregator = _aggregator(chain, clock)

        first = await aggregator.leaderboard()
        chain.fail_block_number = True
        clock.advance(120)

        assert await aggregator.leaderboard() == first
        assert aggregator.cache.stale_serves >= 1

    @pytest.mark.asyncio
    async def test_every_stale_read_is_counted(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        aggregator = _aggregator(chain, clock)

        first = await aggregator.leaderboard()
        chain.fail_block_number = True
        clock.advance(120)
        await aggregator.leaderboard()
        clock.advance(30)

        assert await aggregator.leaderboard() == first
        assert aggregator.cache.stale_serves == 2

    @pytest.mark.asyncio
    async def test_error_without_cached_value_propagates(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        chain.fail_block_number = True
        with pytest.raises(Exception, match="eth_blockNumber"):
            await _aggregator(chain, clock).leaderboard()


class TestUserAggregates:
    @pytest.mark.asyncio
    async def test_user_rank_and_share(self, clock: FixedClock) -> None:
        rank = await _aggregator(_launchpad_chain(), clock).user_rank(TRADER_A)

        assert rank.rank == 3
        assert rank.user_pool_contribution == 15
        assert rank.total_pool_contribution == 85
        assert rank.estimated_share == 17.64

    @pytest.mark.asyncio
    async def test_unknown_user_rank_is_zero(self, clock: FixedClock) -> None:
        rank = await _aggregator(_launchpad_chain(), clock).user_rank(addr(0x777))
        assert (rank.rank, rank.user_pool_contribution, rank.estimated_share) == (0, 0, 0.0)

    @pytest.mark.asyncio
    async def test_user_rank_is_case_insensitive(self, clock: FixedClock) -> None:
        aggregator = _aggregator(_launchpad_chain(), clock)
        upper = "0x" + TRADER_B[2:].upper()
        assert (await aggregator.user_rank(upper)).rank == 1

    @pytest.mark.asyncio
    async def test_user_stats(self, clock: FixedClock) -> None:
        stats = await _aggregator(_launchpad_chain(), clock).user_stats(TRADER_C)

        assert stats.total_buys == 4000
        assert stats.total_sells == 0
        assert stats.total_fees_paid == 40
        assert stats.user_pool_contribution == 20
        assert stats.swap_count == 1
        assert stats.last_swap_time == NOW - 210
        assert stats.referred_by == REFERRER
        assert stats.referral_code == TRADER_C[2:10].upper()

    @pytest.mark.asyncio
    async def test_user_stats_for_referrer(self, clock: FixedClock) -> None:
        stats = await _aggregator(_launchpad_chain(), clock).user_stats(REFERRER)

        assert stats.swap_count == 0
        assert stats.last_swap_time is None
        assert stats.referral_count == 1
        assert stats.referral_earnings == 20
        assert stats.to_dict()["referralEarnings"] == "20"

    @pytest.mark.asyncio
    async def test_last_swap_time_unresolvable(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        chain.block_timestamps = {}
        stats = await _aggregator(chain, clock).user_stats(TRADER_B)
        assert stats.swap_count == 1
        assert stats.last_swap_time is None

    @pytest.mark.asyncio
    async def test_referral_leaderboard(self, clock: FixedClock) -> None:
        entries = await _aggregator(_launchpad_chain(), clock).referral_leaderboard()

        assert len(entries) == 1
        assert entries[0].address == REFERRER
        assert entries[0].referral_count == 1
        assert entries[0].total_earnings == 20
        assert entries[0].rank == 1

    @pytest.mark.asyncio
    async def test_pool_today_uses_pool_window(self, clock: FixedClock) -> None:
        chain = _launchpad_chain()
        chain.block_number = 10_000
        chain.logs.append(buy_log(TOKEN_1, TRADER_A, 10_000, block=9_500))

        aggregator = _aggregator(chain, clock, pool_lookback_blocks=8640)
        pool = await aggregator.pool_today()

        # Only the block 9500 buy is inside 1360..10000
        assert pool.total_user_fees == 50
        assert pool.total_treasury_fees == 50
        assert pool.distributed is False
        assert pool.date == "2023-11-14"
