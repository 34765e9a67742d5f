"""Response models for the external indexer REST API (camelCase on the wire)."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Wei-scale amounts exceed JS number precision, so JSON output carries strings
Wei = Annotated[int, PlainSerializer(str, return_type=str, when_used="json")]


class IndexerModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class AirdropLeaderboardEntry(IndexerModel):
    address: str
    total_fees_paid: Wei = 0
    user_pool_contribution: Wei = 0
    swap_count: int = 0
    rank: int = 0


class ReferralLeaderboardEntry(IndexerModel):
    address: str
    referral_code: str = ""
    referral_count: int = 0
    total_earnings: Wei = 0
    rank: int = 0


class RoiLeaderboardEntry(IndexerModel):
    address: str
    total_invested: Wei = 0
    realized_pnl: Wei = Field(0, alias="realizedPnL")
    token_count: int = 0
    roi_percent: float = 0.0
    rank: int = 0


class PoolInfo(IndexerModel):
    date: str
    total_user_fees: Wei = 0
    total_treasury_fees: Wei = 0
    distributed: bool = False
    total_pool_contribution: Wei = 0


class AirdropLeaderboard(IndexerModel):
    leaderboard: list[AirdropLeaderboardEntry] = Field(default_factory=list)
    pool: PoolInfo | None = None
    total_pool_contribution: Wei = 0
    fee_structure: dict[str, int] = Field(default_factory=dict)


class ReferralLeaderboard(IndexerModel):
    leaderboard: list[ReferralLeaderboardEntry] = Field(default_factory=list)
    referral_bps: int = 0


class RoiLeaderboard(IndexerModel):
    leaderboard: list[RoiLeaderboardEntry] = Field(default_factory=list)


class UserStats(IndexerModel):
    address: str
    total_buys: Wei = 0
    total_sells: Wei = 0
    total_fees_paid: Wei = 0
    user_pool_contribution: Wei = 0
    swap_count: int = 0
    last_swap_time: int | None = None
    total_airdrops_received: Wei = 0
    referral_code: str | None = None
    referred_by: str | None = None
    referral_count: int = 0
    referral_earnings: Wei = 0


class UserRank(IndexerModel):
    rank: int = 0
    user_pool_contribution: Wei = 0
    total_pool_contribution: Wei = 0
    estimated_share: float = 0.0


class TokenPosition(IndexerModel):
    token_address: str
    token_name: str | None = None
    token_symbol: str | None = None
    total_bought: Wei = 0
    total_sold: Wei = 0
    cost_basis: Wei = 0
    realized_pnl: Wei = Field(0, alias="realizedPnL")
    roi_percent: float = 0.0


class FeeStructure(IndexerModel):
    treasury: str = ""
    fees: dict = Field(default_factory=dict)
    graduation_liquidity: dict = Field(default_factory=dict)


class ReferralRegistration(IndexerModel):
    success: bool
    referrer: str = ""
    referred: str = ""


class ReferralCode(IndexerModel):
    code: str
    referrer_address: str
    referral_count: int = 0


class LaunchedToken(IndexerModel):
    token_id: str
    token_address: str
    name: str = ""
    symbol: str = ""
    block_number: int = 0
    timestamp: int = 0


class GraduatedToken(IndexerModel):
    token_id: str
    token_address: str
    name: str = ""
    symbol: str = ""
    liquidity_amount: Wei = 0
    treasury_fee: Wei = 0
    timestamp: int = 0


class CreatorStats(IndexerModel):
    total_launched: int = 0
    total_graduated: int = 0
    success_rate: float = 0.0


class CreatorTokens(IndexerModel):
    launched: list[LaunchedToken] = Field(default_factory=list)
    graduated: list[GraduatedToken] = Field(default_factory=list)
    stats: CreatorStats = Field(default_factory=CreatorStats)


class TokenTradeStats(IndexerModel):
    total_swaps: int = 0
    buy_count: int = 0
    sell_count: int = 0
    total_buy_volume: Wei = 0
    total_sell_volume: Wei = 0
    total_fees: Wei = 0
    unique_traders: int = 0


class TokenInfo(IndexerModel):
    token_id: str
    token_address: str
    creator: str = ""
    name: str = ""
    symbol: str = ""
    launch_block: int = 0
    launch_timestamp: int = 0


class TokenGraduation(IndexerModel):
    liquidity_amount: Wei = 0
    treasury_fee: Wei = 0
    timestamp: int = 0


class TokenStats(IndexerModel):
    token: TokenInfo
    stats: TokenTradeStats = Field(default_factory=TokenTradeStats)
    graduated: TokenGraduation | None = None


class HealthStatus(IndexerModel):
    status: str
    timestamp: int = 0
