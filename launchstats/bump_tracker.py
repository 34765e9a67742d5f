"""Bump tracking: which tokens are being bought right now.

On every new block the tracker re-scans a trailing window of TokenBought
logs for the watched tokens and rebuilds the whole bump map from scratch.
Failures leave the previous map in place (stale but available).
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, replace

from loguru import logger

from launchstats.chain.client import ChainClient
from launchstats.chain.events import (
    TOKEN_BOUGHT_TOPIC,
    ZERO_ADDRESS,
    TradeEvent,
    decode_trades,
    normalize_address,
)
from launchstats.chain.exceptions import ChainError
from launchstats.clock import Clock, SystemClock
from launchstats.fees import TradeSide

LOOKBACK_BLOCKS = 600  # ~30 min at 3s blocks
WINDOW_SEC = 5 * 60
HOT_THRESHOLD = 3
BLOCK_TIME_SEC = 3
TIMESTAMP_BATCH_SIZE = 50


@dataclass(frozen=True)
class BumpRecord:
    last_activity_timestamp: int
    last_actor: str
    recent_activity_count: int  # buys within the trailing window
    is_hot: bool

    def to_dict(self) -> dict:
        return {
            "lastBumpTime": self.last_activity_timestamp,
            "lastBuyer": self.last_actor,
            "recentBumps": self.recent_activity_count,
            "isHot": self.is_hot,
        }


EMPTY_BUMP = BumpRecord(
    last_activity_timestamp=0,
    last_actor=ZERO_ADDRESS,
    recent_activity_count=0,
    is_hot=False,
)


async def resolve_timestamps(
    client: ChainClient,
    block_numbers: list[int],
    *,
    current_block: int,
    now: int,
    batch_size: int = TIMESTAMP_BATCH_SIZE,
    block_time_sec: int = BLOCK_TIME_SEC,
) -> dict[int, int]:
    """Map block number -> unix timestamp.

    Lookups run concurrently in batches of ``batch_size``. A failed lookup
    falls back to ``now - blocks_ago * block_time_sec``.
    """
    timestamps: dict[int, int] = {}
    unique = sorted(set(block_numbers))

    async def _one(bn: int) -> None:
        try:
            timestamps[bn] = await client.get_block_timestamp(bn)
        except Exception as e:
            blocks_ago = max(current_block - bn, 0)
            timestamps[bn] = now - blocks_ago * block_time_sec
            logger.debug(f"[BUMP] Block {bn} timestamp lookup failed ({e}), estimated")

    for i in range(0, len(unique), batch_size):
        await asyncio.gather(*(_one(bn) for bn in unique[i : i + batch_size]))

    return timestamps


def build_bump_map(
    tokens: list[str],
    events: list[TradeEvent],
    *,
    now: int,
    window_sec: int = WINDOW_SEC,
    hot_threshold: int = HOT_THRESHOLD,
) -> dict[str, BumpRecord]:
    """Fold timestamped buy events into one BumpRecord per watched token."""
    by_token: dict[str, list[TradeEvent]] = defaultdict(list)
    for event in events:
        if event.side is TradeSide.BUY:
            by_token[event.token.lower()].append(event)

    bump_map: dict[str, BumpRecord] = {}
    for token in tokens:
        token = token.lower()
        token_events = by_token.get(token)
        if not token_events:
            bump_map[token] = EMPTY_BUMP
            continue

        # Most recent first; block/log order breaks equal timestamps
        token_events.sort(key=lambda e: (e.timestamp, e.block_number, e.log_index), reverse=True)
        latest = token_events[0]
        recent = sum(1 for e in token_events if now - e.timestamp <= window_sec)
        bump_map[token] = BumpRecord(
            last_activity_timestamp=latest.timestamp,
            last_actor=latest.actor,
            recent_activity_count=recent,
            is_hot=recent >= hot_threshold,
        )

    return bump_map


def format_age(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


class BumpTracker:
    """Keeps a recency-windowed bump map for a set of watched tokens."""

    def __init__(
        self,
        client: ChainClient,
        tokens: list[str] | None = None,
        *,
        clock: Clock | None = None,
        lookback_blocks: int = LOOKBACK_BLOCKS,
        window_sec: int = WINDOW_SEC,
        hot_threshold: int = HOT_THRESHOLD,
        block_time_sec: int = BLOCK_TIME_SEC,
        timestamp_batch_size: int = TIMESTAMP_BATCH_SIZE,
        poll_interval_sec: float = 1.0,
    ) -> None:
        self._client = client
        self._clock = clock or SystemClock()
        self._tokens: list[str] = []
        self._lookback_blocks = lookback_blocks
        self._window_sec = window_sec
        self._hot_threshold = hot_threshold
        self._block_time_sec = block_time_sec
        self._batch_size = timestamp_batch_size
        self._poll_interval = poll_interval_sec

        self.bump_map: dict[str, BumpRecord] = {}
        self.last_processed_block = 0
        self.refresh_count = 0
        self.error_count = 0

        self.set_tokens(tokens or [])

    @property
    def tokens(self) -> list[str]:
        return list(self._tokens)

    def set_tokens(self, tokens: list[str]) -> None:
        self._tokens = list(dict.fromkeys(normalize_address(t) for t in tokens))

    async def _fetch(self, current_block: int) -> dict[str, BumpRecord]:
        from_block = max(current_block - self._lookback_blocks, 0)
        logs = await self._client.get_logs(
            self._tokens, [TOKEN_BOUGHT_TOPIC], from_block, current_block
        )
        events = decode_trades(logs)

        now = int(self._clock.now())
        timestamps = await resolve_timestamps(
            self._client,
            [e.block_number for e in events],
            current_block=current_block,
            now=now,
            batch_size=self._batch_size,
            block_time_sec=self._block_time_sec,
        )
        events = [replace(e, timestamp=timestamps.get(e.block_number, now)) for e in events]

        return build_bump_map(
            self._tokens,
            events,
            now=now,
            window_sec=self._window_sec,
            hot_threshold=self._hot_threshold,
        )

    async def refresh(self, block_number: int | None = None) -> bool:
        """Rebuild the bump map for ``block_number`` (or the chain head).

        Returns False when nothing was applied: no watched tokens, the block
        was already processed, the fetch failed, or a newer block finished
        first.
        """
        if not self._tokens:
            return False
        if block_number is not None:
            if block_number == self.last_processed_block:
                return False
            self.last_processed_block = block_number

        try:
            current_block = (
                block_number if block_number is not None
                else await self._client.get_block_number()
            )
            new_map = await self._fetch(current_block)
        except ChainError as e:
            self.error_count += 1
            logger.warning(f"[BUMP] Refresh failed, keeping previous map: {e}")
            return False
        except Exception as e:
            self.error_count += 1
            logger.error(f"[BUMP] Unexpected refresh error, keeping previous map: {e}")
            return False

        if block_number is not None and self.last_processed_block > block_number:
            logger.debug(f"[BUMP] Result for block {block_number} superseded, discarded")
            return False

        self.bump_map = new_map
        self.refresh_count += 1
        hot = sum(1 for r in new_map.values() if r.is_hot)
        logger.debug(f"[BUMP] block={current_block} tokens={len(new_map)} hot={hot}")
        return True

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Poll the chain head and refresh on every new block.

        Runs until ``stop_event`` is set (or the task is cancelled). A failed
        head poll is logged and the loop carries on.
        """
        logger.info(
            f"[BUMP] Tracking {len(self._tokens)} tokens, "
            f"poll every {self._poll_interval}s"
        )
        while stop_event is None or not stop_event.is_set():
            try:
                head = await self._client.get_block_number()
                await self.refresh(head)
            except ChainError as e:
                logger.warning(f"[BUMP] Block number poll failed: {e}")

            if stop_event is None:
                await asyncio.sleep(self._poll_interval)
                continue
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass  # next poll
        logger.info("[BUMP] Tracker stopped")

    def get(self, token: str) -> BumpRecord:
        return self.bump_map.get(token.lower(), EMPTY_BUMP)

    def time_since_bump(self, token: str) -> str:
        record = self.get(token)
        if record.last_activity_timestamp == 0:
            return "No activity"
        diff = max(int(self._clock.now()) - record.last_activity_timestamp, 0)
        return format_age(diff)

    def was_bumped_recently(self, token: str, seconds: int = 30) -> bool:
        record = self.get(token)
        if record.last_activity_timestamp == 0:
            return False
        return int(self._clock.now()) - record.last_activity_timestamp <= seconds

    def hot_tokens(self) -> list[str]:
        hot = [(t, r) for t, r in self.bump_map.items() if r.is_hot]
        hot.sort(key=lambda item: (-item[1].last_activity_timestamp, item[0]))
        return [t for t, _ in hot]
