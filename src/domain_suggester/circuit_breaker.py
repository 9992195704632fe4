"""
Circuit Breaker for the registrar lookup dependency.

Counts consecutive transient failures. Once the count reaches the threshold
the breaker opens for a cool-down window, during which every availability
probe is answered "unavailable" without touching the network.

The breaker closes again purely by time: as soon as the clock passes
``disabled_until`` calls are let through, whether or not the failure
count was reset. ``disabled_until`` is never cleared early.
"""

import time
from typing import Callable, Optional

from .config import BreakerConfig
from .enums import BreakerState, LogLevel
from .models import BreakerSnapshot


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker with a time-based cool-down.

    One instance is shared by every prober in a process; tests build
    their own isolated instances.
    """

    def __init__(
        self,
        config: Optional[BreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        logger=None,
    ) -> None:
        """
        Initialize the circuit breaker.

        Args:
            config: Threshold and cool-down settings
            clock: Monotonic time source, injectable for tests
            logger: Optional AuditLogger
        """
        self._config = config or BreakerConfig()
        self._clock = clock
        self._logger = logger
        self._consecutive_failures = 0
        self._disabled_until: Optional[float] = None

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def disabled_until(self) -> Optional[float]:
        """Monotonic time at which the breaker lets calls through again."""
        return self._disabled_until

    @property
    def state(self) -> BreakerState:
        return BreakerState.OPEN if self.is_open() else BreakerState.CLOSED

    def is_open(self) -> bool:
        """True while the cool-down window has not yet elapsed."""
        return self._disabled_until is not None and self._clock() < self._disabled_until

    def record_success(self) -> None:
        """Reset the failure count after a successful live call."""
        self._consecutive_failures = 0

    def record_transient_failure(self) -> bool:
        """
        Count a transient failure and open the breaker at the threshold.

        Returns:
            True if this failure opened the breaker
        """
        self._consecutive_failures += 1
        if self._consecutive_failures < self._config.failure_threshold:
            return False

        until = self._clock() + self._config.cooldown_seconds
        # Only ever move the window forward
        if self._disabled_until is None or until > self._disabled_until:
            self._disabled_until = until

        if self._logger:
            self._logger.log(
                LogLevel.WARN,
                "CircuitBreaker",
                "Registrar lookups disabled after repeated failures",
                {
                    "consecutive_failures": self._consecutive_failures,
                    "cooldown_seconds": self._config.cooldown_seconds,
                },
            )
        return True

    def snapshot(self) -> BreakerSnapshot:
        return BreakerSnapshot(
            consecutive_failures=self._consecutive_failures,
            disabled_until=self._disabled_until,
        )
