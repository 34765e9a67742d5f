from pydantic_settings import BaseSettings, SettingsConfigDict

from launchstats.fees import FeeSchedule


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Chain RPC (PulseChain mainnet)
    rpc_url: str = "https://rpc.pulsechain.com"
    rpc_max_rps: float = 10.0
    rpc_timeout_sec: float = 15.0

    # Contracts
    factory_address: str = "0x6317446972E2AcA317d7a1ef27D1412AFFcF8E27"
    treasury_address: str = "0x49bBEFa1d94702C0e9a5EAdDEc7c3C5D3eb9086B"
    bonding_curve_address: str = "0x8d487ab0c5a622d7bafc643bec09506ae3c5710b"
    multicall_address: str = "0xcA11bde05977b3631167028862bE2a173976CA11"

    # External indexer (owns persistence, optional)
    indexer_api_url: str = "http://localhost:3001"
    indexer_timeout_sec: float = 10.0
    indexer_max_rps: float = 5.0

    # Fee schedule (basis points, must match the contracts)
    buy_total_bps: int = 100
    buy_user_bps: int = 50
    buy_treasury_bps: int = 50
    sell_total_bps: int = 110
    sell_user_bps: int = 50
    sell_treasury_bps: int = 60
    graduation_fee_bps: int = 1000
    referral_bps: int = 25

    # Bump tracking
    block_time_sec: int = 3
    bump_lookback_blocks: int = 600  # ~30 min
    bump_window_sec: int = 300
    bump_hot_threshold: int = 3
    bump_poll_interval_sec: float = 1.0
    bump_timestamp_batch_size: int = 50

    # Leaderboard
    leaderboard_lookback_blocks: int = 50_000  # several days
    leaderboard_top_n: int = 100
    leaderboard_cache_ttl_sec: float = 60.0
    leaderboard_workers: int = 4
    pool_lookback_blocks: int = 8640  # today's pool

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    api_debug: bool = False
    api_rate_limit: str = "60/minute"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False
    log_dir: str = "logs"

    def fee_schedule(self) -> FeeSchedule:
        return FeeSchedule(
            buy_total_bps=self.buy_total_bps,
            buy_user_bps=self.buy_user_bps,
            buy_treasury_bps=self.buy_treasury_bps,
            sell_total_bps=self.sell_total_bps,
            sell_user_bps=self.sell_user_bps,
            sell_treasury_bps=self.sell_treasury_bps,
            graduation_fee_bps=self.graduation_fee_bps,
            referral_bps=self.referral_bps,
        )


settings = Settings()
