"""
Request throttle for the domain suggester system.

A per-client sliding window: each key may make ``max_requests`` requests
within any ``window_seconds`` span. Consulted once per incoming request,
before any orchestration starts.
"""

import time
from collections import defaultdict
from typing import Callable, Optional

from .config import ThrottleConfig
from .models import ThrottleDecision


class RequestThrottle:
    """Sliding-window request counter keyed by client identifier."""

    def __init__(
        self,
        config: Optional[ThrottleConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the throttle.

        Args:
            config: Window size and request budget
            clock: Monotonic time source for window arithmetic
            wall_clock: Epoch time source used for ``reset_at``
        """
        self._config = config or ThrottleConfig()
        self._clock = clock
        self._wall_clock = wall_clock
        self._request_times: dict[str, list[float]] = defaultdict(list)

    def _prune(self, key: str, now: float) -> list[float]:
        window_start = now - self._config.window_seconds
        times = [t for t in self._request_times[key] if t > window_start]
        self._request_times[key] = times
        return times

    def _reset_at(self, times: list[float], now: float) -> float:
        if not times:
            return self._wall_clock() + self._config.window_seconds
        return self._wall_clock() + max(0.0, times[0] + self._config.window_seconds - now)

    def allow(self, key: str) -> ThrottleDecision:
        """
        Check and record one request for ``key``.

        A rejected request is not recorded, so it does not extend the window.
        """
        now = self._clock()
        times = self._prune(key, now)

        if len(times) >= self._config.max_requests:
            return ThrottleDecision(
                allowed=False,
                remaining=0,
                reset_at=self._reset_at(times, now),
            )

        times.append(now)
        return ThrottleDecision(
            allowed=True,
            remaining=self._config.max_requests - len(times),
            reset_at=self._reset_at(times, now),
        )

    def purge(self) -> int:
        """
        Drop keys with no requests left in the window.

        Returns:
            Number of keys removed
        """
        now = self._clock()
        stale = [key for key in list(self._request_times) if not self._prune(key, now)]
        for key in stale:
            del self._request_times[key]
        return len(stale)
