"""Fee-contribution leaderboard rebuilt from event logs.

Scan flow:
1. TokenCreated logs from the factory enumerate candidate tokens.
2. Per-token TokenBought/TokenSold fetches fan out over a bounded worker
   pool; each token yields a TokenFetchResult carrying events or the error.
3. Fee splits from ``launchstats.fees`` are accumulated per trader.
4. Traders are ranked by user-pool contribution (address breaks ties).

There is no index: every cache miss rescans the trailing window.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime

from loguru import logger

from launchstats.cache import TTLCache
from launchstats.chain.client import ChainClient
from launchstats.chain.events import (
    TOKEN_BOUGHT_TOPIC,
    TOKEN_CREATED_TOPIC,
    TOKEN_SOLD_TOPIC,
    ZERO_ADDRESS,
    TradeEvent,
    decode_token_created,
    decode_trades,
    normalize_address,
)
from launchstats.chain.exceptions import EventDecodeError
from launchstats.clock import Clock, SystemClock
from launchstats.fees import (
    DEFAULT_FEE_SCHEDULE,
    FeeSchedule,
    TradeSide,
    compute_fee,
    split_referral,
)

LOOKBACK_BLOCKS = 50_000
POOL_LOOKBACK_BLOCKS = 8640
TOP_N = 100
WORKERS = 4


# ── Result types ──────────────────────────────────────────────────────


@dataclass
class ContributorTotals:
    total_fees: int = 0
    user_pool: int = 0
    swap_count: int = 0
    buy_volume: int = 0
    sell_volume: int = 0
    last_block: int = 0

    @property
    def treasury_fees(self) -> int:
        return self.total_fees - self.user_pool


@dataclass(frozen=True)
class LeaderboardEntry:
    address: str
    total_fees_paid: int
    user_pool_contribution: int
    swap_count: int
    rank: int

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "totalFeesPaid": str(self.total_fees_paid),
            "userPoolContribution": str(self.user_pool_contribution),
            "swapCount": self.swap_count,
            "rank": self.rank,
        }


@dataclass(frozen=True)
class ReferralEntry:
    address: str
    referral_code: str
    referral_count: int
    total_earnings: int
    rank: int

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "referralCode": self.referral_code,
            "referralCount": self.referral_count,
            "totalEarnings": str(self.total_earnings),
            "rank": self.rank,
        }


@dataclass
class TokenFetchResult:
    token: str
    events: list[TradeEvent] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ScanResult:
    from_block: int
    to_block: int
    tokens: list[str]
    results: list[TokenFetchResult]

    @property
    def events(self) -> list[TradeEvent]:
        return [e for r in self.results if r.ok for e in r.events]

    @property
    def failures(self) -> list[TokenFetchResult]:
        return [r for r in self.results if not r.ok]


@dataclass(frozen=True)
class PoolInfo:
    date: str
    total_user_fees: int
    total_treasury_fees: int
    distributed: bool = False

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "totalUserFees": str(self.total_user_fees),
            "totalTreasuryFees": str(self.total_treasury_fees),
            "distributed": self.distributed,
            "totalPoolContribution": str(self.total_user_fees),
        }


@dataclass(frozen=True)
class LeaderboardResult:
    entries: list[LeaderboardEntry]
    pool: PoolInfo
    fee_structure: dict[str, int]
    token_count: int
    failed_token_count: int
    from_block: int
    to_block: int

    @property
    def total_pool_contribution(self) -> int:
        return self.pool.total_user_fees

    def to_dict(self) -> dict:
        return {
            "leaderboard": [e.to_dict() for e in self.entries],
            "pool": self.pool.to_dict(),
            "totalPoolContribution": str(self.total_pool_contribution),
            "feeStructure": self.fee_structure,
            "tokenCount": self.token_count,
            "failedTokenCount": self.failed_token_count,
            "blockRange": {"from": str(self.from_block), "to": str(self.to_block)},
        }


@dataclass(frozen=True)
class UserStats:
    address: str
    total_buys: int
    total_sells: int
    total_fees_paid: int
    user_pool_contribution: int
    swap_count: int
    last_swap_time: int | None
    referral_code: str
    referred_by: str | None
    referral_count: int
    referral_earnings: int

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "totalBuys": str(self.total_buys),
            "totalSells": str(self.total_sells),
            "totalFeesPaid": str(self.total_fees_paid),
            "userPoolContribution": str(self.user_pool_contribution),
            "swapCount": self.swap_count,
            "lastSwapTime": self.last_swap_time,
            "totalAirdropsReceived": "0",
            "referralCode": self.referral_code,
            "referredBy": self.referred_by,
            "referralCount": self.referral_count,
            "referralEarnings": str(self.referral_earnings),
        }


@dataclass(frozen=True)
class UserRank:
    rank: int
    user_pool_contribution: int
    total_pool_contribution: int
    estimated_share: float

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "userPoolContribution": str(self.user_pool_contribution),
            "totalPoolContribution": str(self.total_pool_contribution),
            "estimatedShare": self.estimated_share,
        }


# ── Pure aggregation ──────────────────────────────────────────────────


def referral_code(address: str) -> str:
    return address[2:10].upper()


def accumulate_fees(
    events: list[TradeEvent], schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE
) -> dict[str, ContributorTotals]:
    """Sum fee contributions per trader address."""
    totals: dict[str, ContributorTotals] = defaultdict(ContributorTotals)
    for event in events:
        split = compute_fee(event.side, event.native_amount, schedule)
        t = totals[event.actor.lower()]
        t.total_fees += split.total_fee
        t.user_pool += split.user_fee
        t.swap_count += 1
        if event.side is TradeSide.BUY:
            t.buy_volume += event.native_amount
        else:
            t.sell_volume += event.native_amount
        t.last_block = max(t.last_block, event.block_number)
    return dict(totals)


def rank_contributors(
    totals: dict[str, ContributorTotals], top_n: int | None = TOP_N
) -> list[LeaderboardEntry]:
    """Sort by user-pool contribution descending, address ascending on ties."""
    ordered = sorted(totals.items(), key=lambda item: (-item[1].user_pool, item[0]))
    if top_n is not None:
        ordered = ordered[:top_n]
    return [
        LeaderboardEntry(
            address=address,
            total_fees_paid=t.total_fees,
            user_pool_contribution=t.user_pool,
            swap_count=t.swap_count,
            rank=i + 1,
        )
        for i, (address, t) in enumerate(ordered)
    ]


def accumulate_referrals(
    events: list[TradeEvent], schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE
) -> dict[str, tuple[set[str], int]]:
    """referrer -> (referred addresses, referral earnings) from referred buys."""
    referrals: dict[str, tuple[set[str], int]] = {}
    for event in events:
        if event.side is not TradeSide.BUY or event.referrer == ZERO_ADDRESS:
            continue
        _, fee = split_referral(compute_fee(event.side, event.native_amount, schedule), True, schedule)
        referred, earned = referrals.get(event.referrer, (set(), 0))
        referred.add(event.actor.lower())
        referrals[event.referrer] = (referred, earned + fee)
    return referrals


def rank_referrers(
    referrals: dict[str, tuple[set[str], int]], top_n: int | None = TOP_N
) -> list[ReferralEntry]:
    ordered = sorted(referrals.items(), key=lambda item: (-item[1][1], item[0]))
    if top_n is not None:
        ordered = ordered[:top_n]
    return [
        ReferralEntry(
            address=address,
            referral_code=referral_code(address),
            referral_count=len(referred),
            total_earnings=earned,
            rank=i + 1,
        )
        for i, (address, (referred, earned)) in enumerate(ordered)
    ]


def estimated_share(contribution: int, total: int) -> float:
    """Percentage of the pool, truncated to two decimals."""
    if total <= 0:
        return 0.0
    return (contribution * 10_000 // total) / 100


# ── Aggregator ────────────────────────────────────────────────────────


class LeaderboardAggregator:
    """Computes leaderboard, user and pool aggregates from chain logs."""

    def __init__(
        self,
        client: ChainClient,
        *,
        factory_address: str,
        schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
        cache: TTLCache | None = None,
        clock: Clock | None = None,
        lookback_blocks: int = LOOKBACK_BLOCKS,
        pool_lookback_blocks: int = POOL_LOOKBACK_BLOCKS,
        top_n: int = TOP_N,
        workers: int = WORKERS,
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self._client = client
        self._factory = normalize_address(factory_address)
        self._schedule = schedule
        self._clock = clock or SystemClock()
        self._cache = cache or TTLCache(60.0, self._clock)
        self._lookback_blocks = lookback_blocks
        self._pool_lookback_blocks = pool_lookback_blocks
        self._top_n = top_n
        self._workers = workers

    @property
    def schedule(self) -> FeeSchedule:
        return self._schedule

    @property
    def cache(self) -> TTLCache:
        return self._cache

    async def _token_addresses(self, from_block: int, to_block: int) -> list[str]:
        logs = await self._client.get_logs(
            self._factory, [TOKEN_CREATED_TOPIC], from_block, to_block
        )
        tokens: list[str] = []
        for log in logs:
            try:
                tokens.append(decode_token_created(log).token)
            except EventDecodeError as e:
                logger.debug(f"[LEADERBOARD] Skipping bad TokenCreated log: {e}")
        return list(dict.fromkeys(tokens))

    async def token_addresses(self) -> list[str]:
        """All tokens created by the factory within the leaderboard window."""
        current_block = await self._client.get_block_number()
        return await self._token_addresses(
            max(current_block - self._lookback_blocks, 0), current_block
        )

    async def _fetch_token(
        self,
        token: str,
        from_block: int,
        to_block: int,
        semaphore: asyncio.Semaphore,
    ) -> TokenFetchResult:
        async with semaphore:
            try:
                buys = await self._client.get_logs(
                    token, [TOKEN_BOUGHT_TOPIC], from_block, to_block
                )
                sells = await self._client.get_logs(
                    token, [TOKEN_SOLD_TOPIC], from_block, to_block
                )
            except Exception as e:
                logger.warning(f"[LEADERBOARD] Token {token} log fetch failed: {e}")
                return TokenFetchResult(token=token, error=e)
        return TokenFetchResult(token=token, events=decode_trades(buys + sells))

    async def scan(self, trade_lookback_blocks: int | None = None) -> ScanResult:
        """Enumerate factory tokens and fetch their trades concurrently.

        Tokens are always enumerated over the full leaderboard window; trades
        are read over ``trade_lookback_blocks`` (defaults to the same window).
        """
        current_block = await self._client.get_block_number()
        token_from = max(current_block - self._lookback_blocks, 0)
        trade_from = max(
            current_block - (trade_lookback_blocks or self._lookback_blocks), 0
        )

        tokens = await self._token_addresses(token_from, current_block)
        semaphore = asyncio.Semaphore(self._workers)
        results = await asyncio.gather(
            *(self._fetch_token(t, trade_from, current_block, semaphore) for t in tokens)
        )

        scan = ScanResult(
            from_block=trade_from,
            to_block=current_block,
            tokens=tokens,
            results=list(results),
        )
        logger.info(
            f"[LEADERBOARD] Scanned {len(tokens)} tokens over blocks "
            f"{trade_from}..{current_block}: {len(scan.events)} trades, "
            f"{len(scan.failures)} failed"
        )
        return scan

    async def _cached_scan(self, trade_lookback_blocks: int | None = None) -> ScanResult:
        window = trade_lookback_blocks or self._lookback_blocks
        return await self._cache.get_or_compute(
            f"scan:{window}", lambda: self.scan(trade_lookback_blocks)
        )

    def _today(self) -> str:
        return datetime.fromtimestamp(self._clock.now(), UTC).date().isoformat()

    def _pool_from_totals(self, totals: dict[str, ContributorTotals]) -> PoolInfo:
        return PoolInfo(
            date=self._today(),
            total_user_fees=sum(t.user_pool for t in totals.values()),
            total_treasury_fees=sum(t.treasury_fees for t in totals.values()),
        )

    async def leaderboard(self) -> LeaderboardResult:
        """Rank contributors from the cached scan.

        Only the scan is cached; ranking is rebuilt per call so the result is
        never newer-stamped than the trades it was built from.
        """
        scan = await self._cached_scan()
        totals = accumulate_fees(scan.events, self._schedule)
        return LeaderboardResult(
            entries=rank_contributors(totals, self._top_n),
            pool=self._pool_from_totals(totals),
            fee_structure=self._schedule.as_dict(),
            token_count=len(scan.tokens),
            failed_token_count=len(scan.failures),
            from_block=scan.from_block,
            to_block=scan.to_block,
        )

    async def referral_leaderboard(self) -> list[ReferralEntry]:
        scan = await self._cached_scan()
        return rank_referrers(accumulate_referrals(scan.events, self._schedule), self._top_n)

    async def user_stats(self, address: str) -> UserStats:
        address = normalize_address(address)
        scan = await self._cached_scan()
        events = scan.events

        mine = [e for e in events if e.actor == address]
        totals = accumulate_fees(mine, self._schedule).get(address, ContributorTotals())

        referred_by = next(
            (e.referrer for e in sorted(mine, key=lambda e: e.block_number)
             if e.side is TradeSide.BUY and e.referrer != ZERO_ADDRESS),
            None,
        )
        referred, earnings = accumulate_referrals(events, self._schedule).get(address, (set(), 0))

        last_swap_time = None
        if totals.last_block:
            try:
                last_swap_time = await self._client.get_block_timestamp(totals.last_block)
            except Exception as e:
                logger.debug(f"[LEADERBOARD] Last swap timestamp unavailable for {address}: {e}")

        return UserStats(
            address=address,
            total_buys=totals.buy_volume,
            total_sells=totals.sell_volume,
            total_fees_paid=totals.total_fees,
            user_pool_contribution=totals.user_pool,
            swap_count=totals.swap_count,
            last_swap_time=last_swap_time,
            referral_code=referral_code(address),
            referred_by=referred_by,
            referral_count=len(referred),
            referral_earnings=earnings,
        )

    async def user_rank(self, address: str) -> UserRank:
        address = normalize_address(address)
        scan = await self._cached_scan()
        totals = accumulate_fees(scan.events, self._schedule)
        ranking = rank_contributors(totals, top_n=None)

        rank = next((e.rank for e in ranking if e.address == address), 0)
        contribution = totals[address].user_pool if address in totals else 0
        total = sum(t.user_pool for t in totals.values())
        return UserRank(
            rank=rank,
            user_pool_contribution=contribution,
            total_pool_contribution=total,
            estimated_share=estimated_share(contribution, total),
        )

    async def pool_today(self) -> PoolInfo:
        scan = await self._cached_scan(self._pool_lookback_blocks)
        return self._pool_from_totals(accumulate_fees(scan.events, self._schedule))
