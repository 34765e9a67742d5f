"""In-memory TTL cache for recomputed aggregates.

Injected into the aggregators instead of living in module globals.
Single event loop, so no locking: a value is only ever written between
awaits. Concurrent misses on one key await the same in-flight task.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from launchstats.clock import Clock, SystemClock


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


class TTLCache:
    """Key/value cache with a fixed time-to-live per entry."""

    def __init__(self, ttl_sec: float, clock: Clock | None = None) -> None:
        if ttl_sec < 0:
            raise ValueError(f"ttl_sec must be >= 0, got {ttl_sec}")
        self._ttl = ttl_sec
        self._clock = clock or SystemClock()
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Future] = {}

        self.hits = 0
        self.misses = 0
        self.stale_serves = 0

    @property
    def ttl_sec(self) -> float:
        return self._ttl

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock.now() - entry.stored_at < self._ttl

    def get(self, key: str) -> Any | None:
        """Return the value if present and fresh, else None."""
        entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry):
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def stale(self, key: str) -> Any | None:
        """Return the last stored value regardless of age."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def age(self, key: str) -> float | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock.now() - entry.stored_at

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock.now())

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    async def get_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        *,
        serve_stale: bool = True,
    ) -> Any:
        """Return the cached value or recompute it.

        Concurrent misses on the same key share one recomputation. When
        recomputation raises and a previous value exists, the stale value is
        returned and the error is logged.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(key, factory, serve_stale))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        else:
            logger.debug(f"[CACHE] Joining in-flight refresh of '{key}'")
        # Shielded so one cancelled caller does not abort the shared refresh
        return await asyncio.shield(task)

    async def _refresh(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        serve_stale: bool,
    ) -> Any:
        try:
            value = await factory()
        except Exception as e:
            previous = self.stale(key)
            if serve_stale and previous is not None:
                self.stale_serves += 1
                logger.warning(
                    f"[CACHE] Refresh of '{key}' failed ({type(e).__name__}: {e}), "
                    f"serving stale value aged {self.age(key):.0f}s"
                )
                return previous
            raise

        self.set(key, value)
        return value
