"""
Retry Policy
============
Immutable back-off configuration shared by delivery retriers.
"""

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential back-off policy."""
    max_retries: int = 3          # Retries after the first attempt
    backoff_base: float = 2.0     # Delay before retry n is base ** n
    max_delay: float = 60.0
    jitter: bool = False

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.backoff_base <= 0:
            raise ValueError("backoff_base must be > 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_number: int) -> float:
        """
        Delay in seconds before the given retry (1-based).

        With the defaults this yields 2, 4 and 8 seconds.
        """
        delay = min(self.backoff_base ** retry_number, self.max_delay)
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay
