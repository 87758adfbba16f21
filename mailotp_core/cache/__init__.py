"""
Cache Stores
============
Pluggable storage for OTP and throttle state.
"""

from .base import CacheBackend, CacheStore
from .exceptions import CacheStoreError, CacheUnavailable
from .memory import InMemoryCacheStore
from .redis_store import RedisCacheStore

__all__ = [
    # Interface
    "CacheBackend",
    "CacheStore",
    # Exceptions
    "CacheStoreError",
    "CacheUnavailable",
    # Stores
    "InMemoryCacheStore",
    "RedisCacheStore",
]
