"""
Retry Logic with Exponential Backoff
=====================================
Bounded retry for transient delivery failures.
"""

from .exceptions import RetryExhausted
from .policy import RetryPolicy
from .backoff import DeliveryRetrier

__all__ = [
    "RetryExhausted",
    "RetryPolicy",
    "DeliveryRetrier",
]
