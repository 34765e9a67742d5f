"""Entry point: bump tracker, watchlist refresh and the aggregate API."""

import asyncio
import signal

from loguru import logger

from config.settings import settings
from launchstats.api.registry import AppRegistry, ContractAddresses
from launchstats.api.server import run_api_server
from launchstats.bump_tracker import BumpTracker
from launchstats.cache import TTLCache
from launchstats.chain.client import ChainClient
from launchstats.chain.exceptions import ChainError
from launchstats.chain.multicall import TokenStateReader, summarize
from launchstats.clock import SystemClock
from launchstats.indexer.client import IndexerClient
from launchstats.leaderboard import LeaderboardAggregator
from launchstats.service import LeaderboardService
from launchstats.utils.logger import setup_logger

WATCHLIST_REFRESH_SEC = 60


async def refresh_watchlist(
    aggregator: LeaderboardAggregator,
    reader: TokenStateReader,
    tracker: BumpTracker,
    registry: AppRegistry,
) -> None:
    """Watch every factory token that is neither graduated nor deleted."""
    tokens = await aggregator.token_addresses()
    states = await reader.read_states(tokens)
    registry.token_states = states

    # Tokens whose state could not be read stay on the watchlist
    watched = [
        t for t, s in states.items()
        if s.is_active or (s.graduated is None and s.deleted is None)
    ]
    tracker.set_tokens(watched)

    summary = summarize(states)
    logger.info(
        f"[WATCHLIST] {summary.total} tokens: {summary.active} active, "
        f"{summary.graduated} graduated, {summary.deleted} deleted, "
        f"{summary.unknown} unknown; watching {len(watched)}"
    )


async def _watchlist_loop(*args) -> None:
    while True:
        try:
            await refresh_watchlist(*args)
        except ChainError as e:
            logger.warning(f"[WATCHLIST] Refresh failed, keeping previous list: {e}")
        except Exception as e:
            logger.error(f"[WATCHLIST] Unexpected refresh error: {e}")
        await asyncio.sleep(WATCHLIST_REFRESH_SEC)


async def main() -> None:
    setup_logger(json_logs=settings.json_logs, level=settings.log_level, log_dir=settings.log_dir)
    logger.info("Starting launchstats...")

    schedule = settings.fee_schedule()
    clock = SystemClock()

    chain = ChainClient(
        settings.rpc_url,
        max_rps=settings.rpc_max_rps,
        timeout=settings.rpc_timeout_sec,
    )
    indexer = IndexerClient(
        settings.indexer_api_url,
        timeout=settings.indexer_timeout_sec,
        max_rps=settings.indexer_max_rps,
    )
    aggregator = LeaderboardAggregator(
        chain,
        factory_address=settings.factory_address,
        schedule=schedule,
        cache=TTLCache(settings.leaderboard_cache_ttl_sec, clock),
        clock=clock,
        lookback_blocks=settings.leaderboard_lookback_blocks,
        pool_lookback_blocks=settings.pool_lookback_blocks,
        top_n=settings.leaderboard_top_n,
        workers=settings.leaderboard_workers,
    )
    tracker = BumpTracker(
        chain,
        clock=clock,
        lookback_blocks=settings.bump_lookback_blocks,
        window_sec=settings.bump_window_sec,
        hot_threshold=settings.bump_hot_threshold,
        block_time_sec=settings.block_time_sec,
        timestamp_batch_size=settings.bump_timestamp_batch_size,
        poll_interval_sec=settings.bump_poll_interval_sec,
    )
    reader = TokenStateReader(chain, settings.multicall_address)

    registry = AppRegistry(
        service=LeaderboardService(aggregator, indexer),
        bump_tracker=tracker,
        schedule=schedule,
        contracts=ContractAddresses(
            factory=settings.factory_address,
            treasury=settings.treasury_address,
            bonding_curve=settings.bonding_curve_address,
        ),
    )

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    tasks = [
        asyncio.create_task(
            _watchlist_loop(aggregator, reader, tracker, registry), name="watchlist"
        ),
        asyncio.create_task(tracker.run(shutdown_event), name="bump_tracker"),
        asyncio.create_task(run_api_server(registry), name="api_server"),
    ]

    done, pending = await asyncio.wait(
        [*tasks, asyncio.create_task(shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )
    for task in done:
        if task.exception() is not None:
            logger.error(f"Task {task.get_name()} crashed: {task.exception()}")

    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    await chain.close()
    await indexer.close()
    logger.info("Shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
