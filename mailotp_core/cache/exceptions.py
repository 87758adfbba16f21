"""
Cache Exceptions
================
Exception classes for cache store operations.
"""

from typing import Optional


class CacheStoreError(Exception):
    """Base exception for cache store failures."""

    def __init__(self, message: str, backend: str = "unknown", key: Optional[str] = None):
        self.backend = backend
        self.key = key
        super().__init__(f"[{backend}] {message}")


class CacheUnavailable(CacheStoreError):
    """Raised when the backing store cannot be reached or fails an I/O call."""
    pass
