"""
Property-based tests for the TTL cache.

A fake clock drives expiry so every property is deterministic.
"""

import asyncio

from hypothesis import given, settings
from hypothesis import strategies as st

from domain_suggester.ttl_cache import TTLCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


domain_keys = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-"),
    min_size=1,
    max_size=20,
).map(lambda s: s + ".com")


class TestFreshnessProperty:
    """Entries are returned only while younger than the TTL."""

    @given(
        key=domain_keys,
        value=st.booleans(),
        ttl=st.floats(min_value=1.0, max_value=3600.0),
        elapsed_fraction=st.floats(min_value=0.0, max_value=0.99),
    )
    @settings(max_examples=100)
    def test_fresh_entry_is_returned(
        self,
        key: str,
        value: bool,
        ttl: float,
        elapsed_fraction: float,
    ) -> None:
        clock = FakeClock()
        cache: TTLCache[bool] = TTLCache(ttl_seconds=ttl, clock=clock)

        cache.set(key, value)
        clock.advance(ttl * elapsed_fraction)

        assert cache.get(key) is value

    @given(
        key=domain_keys,
        value=st.booleans(),
        ttl=st.floats(min_value=1.0, max_value=3600.0),
        extra=st.floats(min_value=0.0, max_value=3600.0),
    )
    @settings(max_examples=100)
    def test_expired_entry_is_never_returned(
        self,
        key: str,
        value: bool,
        ttl: float,
        extra: float,
    ) -> None:
        """An entry read at or after its TTL is absent and is removed."""
        clock = FakeClock(start=0.0)
        cache: TTLCache[bool] = TTLCache(ttl_seconds=ttl, clock=clock)

        cache.set(key, value)
        clock.advance(ttl + extra)

        assert cache.get(key) is None
        assert len(cache) == 0

    @given(key=domain_keys, first=st.booleans(), second=st.booleans())
    @settings(max_examples=50)
    def test_last_write_wins_and_refreshes_age(self, key: str, first: bool, second: bool) -> None:
        clock = FakeClock()
        cache: TTLCache[bool] = TTLCache(ttl_seconds=60.0, clock=clock)

        cache.set(key, first)
        clock.advance(50.0)
        cache.set(key, second)
        clock.advance(50.0)

        assert cache.get(key) is second


class TestSweepProperty:
    """Sweeping removes exactly the expired entries."""

    @given(
        old_keys=st.lists(domain_keys, max_size=10, unique=True),
        new_keys=st.lists(domain_keys, max_size=10, unique=True),
    )
    @settings(max_examples=100)
    def test_sweep_removes_only_expired(self, old_keys: list[str], new_keys: list[str]) -> None:
        new_keys = [k for k in new_keys if k not in old_keys]
        clock = FakeClock()
        cache: TTLCache[bool] = TTLCache(ttl_seconds=100.0, clock=clock)

        for key in old_keys:
            cache.set(key, True)
        clock.advance(60.0)
        for key in new_keys:
            cache.set(key, False)
        clock.advance(50.0)

        removed = cache.sweep()

        assert removed == len(old_keys)
        assert len(cache) == len(new_keys)
        for key in new_keys:
            assert cache.get(key) is False

    def test_background_sweeper_starts_and_stops(self) -> None:
        async def run() -> None:
            cache: TTLCache[bool] = TTLCache(ttl_seconds=1.0, sweep_interval_seconds=0.01)
            task = cache.start_sweeper()
            assert cache.start_sweeper() is task
            await asyncio.sleep(0.03)
            await cache.stop_sweeper()
            assert task.done()

        asyncio.run(run())


class TestKeyNormalization:
    """Keys pass through the normalizer on read and write."""

    @given(key=domain_keys)
    @settings(max_examples=50)
    def test_lowercase_normalizer_matches_any_case(self, key: str) -> None:
        cache: TTLCache[bool] = TTLCache(ttl_seconds=60.0, key_normalizer=str.lower)

        cache.set(key.upper(), True)

        assert cache.get(key) is True
        assert key.upper() in cache

    def test_non_positive_ttl_rejected(self) -> None:
        try:
            TTLCache(ttl_seconds=0)
        except ValueError:
            pass
        else:
            raise AssertionError("Expected ValueError for zero TTL")
