"""
Email Exceptions
================
Exception classes for message delivery.
"""

from typing import Optional


class DeliveryError(Exception):
    """Raised when a message could not be delivered."""

    def __init__(self, message: str, recipient: str, attempts: int = 0, cause: Optional[Exception] = None):
        self.recipient = recipient
        self.attempts = attempts
        self.cause = cause
        super().__init__(message)
