"""
Retry Exceptions
================
Exception classes for retry operations.
"""

from typing import Optional


class RetryExhausted(Exception):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, message: str, attempts: int = 0, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_exception = last_exception
