"""Capped exponential backoff with jitter for health checks and reconnects."""

import random

from influxreporter.config.loader import BackoffConfig

# Growth stops long before this; it only keeps multiplier**n finite.
_MAX_EXPONENT = 64


class Backoff:
    """Delay schedule driven by consecutive failures.

    With no failures the delay is ``base_delay``. Each recorded failure
    multiplies it by ``multiplier`` up to ``max_delay``. Jitter spreads every
    delay uniformly within +/- ``jitter`` of itself, still capped at
    ``max_delay``.

    Example:
        backoff = Backoff(BackoffConfig(base_delay=5, max_delay=60))
        backoff.record_failure()
        await asyncio.sleep(backoff.next_delay())  # ~10s
        backoff.reset()
    """

    def __init__(self, config: BackoffConfig, rng: random.Random | None = None) -> None:
        """Initialize the schedule.

        Args:
            config: Backoff parameters
            rng: Random source for jitter
        """
        self._config = config
        self._rng = rng or random.Random()
        self._failures = 0

    @property
    def failures(self) -> int:
        """Get the number of consecutive failures recorded."""
        return self._failures

    def record_failure(self) -> None:
        """Record one more consecutive failure."""
        self._failures += 1

    def reset(self) -> None:
        """Forget all failures."""
        self._failures = 0

    def base_delay(self) -> float:
        """Return the delay before jitter for the current failure count."""
        exponent = min(self._failures, _MAX_EXPONENT)
        delay = self._config.base_delay * self._config.multiplier**exponent
        return min(delay, self._config.max_delay)

    def next_delay(self) -> float:
        """Return the delay to wait before the next attempt, jitter applied."""
        delay = self.base_delay()
        if self._config.jitter > 0:
            delay *= 1 + self._rng.uniform(-self._config.jitter, self._config.jitter)
        return max(0.0, min(delay, self._config.max_delay))
