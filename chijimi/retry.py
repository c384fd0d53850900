"""Retry policy for store batch commits."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class RetryStrategy(Enum):
    """Backoff strategies."""
    LINEAR_BACKOFF = "linear_backoff"
    EXPONENTIAL_BACKOFF = "exponential_backoff"
    FIXED_DELAY = "fixed_delay"


@dataclass
class RetryPolicy:
    """
    Bounded retry with capped backoff.

    With the defaults a call is attempted up to 4 times, sleeping
    1s, 2s, 3s between attempts.

    Attributes:
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        strategy: How the delay grows
        sleep: Sleep function (replaced in tests)
    """
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    strategy: RetryStrategy = RetryStrategy.LINEAR_BACKOFF
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delay_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failure (1-based)."""
        if self.strategy == RetryStrategy.EXPONENTIAL_BACKOFF:
            delay = self.initial_delay * (2 ** (attempt - 1))
        elif self.strategy == RetryStrategy.LINEAR_BACKOFF:
            delay = self.initial_delay * attempt
        else:
            delay = self.initial_delay
        return min(delay, self.max_delay)

    def run(self, func: Callable[..., Any], *args, description: str = "operation", **kwargs) -> Any:
        """
        Call ``func`` until it succeeds or retries run out.

        Raises:
            The last exception raised by ``func``
        """
        attempt = 0
        while True:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                attempt += 1
                if attempt > self.max_retries:
                    logger.error(f"{description} failed after {self.max_retries} retries: {e}")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"{description} failed, retry {attempt}/{self.max_retries} in {delay:.1f}s: {e}"
                )
                self.sleep(delay)
