"""
TTL Cache for the domain suggester system.

A freshness cache: every entry expires a fixed time after it was written.
There is no capacity bound and no LRU eviction. Expired entries are
removed by a periodic background sweep, and reads check expiry themselves
so a stale value is never returned between sweeps.
"""

import asyncio
import threading
import time
from typing import Callable, Generic, Optional, TypeVar

from .models import CacheEntry

T = TypeVar("T")


class TTLCache(Generic[T]):
    """
    Key/value store with lazy expiry and an optional background sweeper.

    Keys are passed through ``key_normalizer`` (identity by default) on
    every read and write. Safe for concurrent use; the last writer wins.
    """

    def __init__(
        self,
        ttl_seconds: float,
        sweep_interval_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        key_normalizer: Optional[Callable[[str], str]] = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            ttl_seconds: Lifetime of each entry
            sweep_interval_seconds: Interval between background sweeps
            clock: Monotonic time source, injectable for tests
            key_normalizer: Optional function applied to every key
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self._ttl = ttl_seconds
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._normalize = key_normalizer or (lambda key: key)
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _is_expired(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.written_at >= self._ttl

    def get(self, key: str) -> Optional[T]:
        """
        Return the cached value, or None if unset or expired.

        An expired entry found on read is removed immediately.
        """
        key = self._normalize(key)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, now):
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: T) -> None:
        """Store a value, replacing any previous entry for the key."""
        key = self._normalize(key)
        with self._lock:
            self._entries[key] = CacheEntry(value=value, written_at=self._clock())

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """
        Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items()
                if self._is_expired(entry, now)
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    async def run_sweeper(self) -> None:
        """Sweep at the configured interval until cancelled."""
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()

    def start_sweeper(self) -> asyncio.Task:
        """
        Start the background sweep task on the running event loop.

        Calling it again while a sweeper is running returns the existing task.
        """
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self.run_sweeper())
        return self._sweeper

    async def stop_sweeper(self) -> None:
        """Cancel the background sweep task, if any."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
