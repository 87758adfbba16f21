"""
Cache Store Interface
=====================
Capability interface shared by the in-process and Redis-backed stores.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional


class CacheBackend(str, Enum):
    """Storage tier holding OTP and throttle state."""
    MEMORY = "memory"
    REMOTE = "remote"


class CacheStore(ABC):
    """
    Async key/value store with per-key expiry.

    Implementations must honour:
    - ``get`` after ``delete`` or TTL expiry returns ``None``
    - ``set`` overwrites unconditionally
    - ``delete`` reports whether this call removed a live value
    - I/O failures raise ``CacheUnavailable``, never a silent ``None``
    """

    backend: CacheBackend

    @abstractmethod
    async def set(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True only if a live value was removed."""
        ...

    @abstractmethod
    async def set_if_absent(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        """Write only when no live value exists. Returns True if written."""
        ...

    @abstractmethod
    async def increment(self, key: str, ttl: Optional[float] = None) -> int:
        """Atomically add one to a counter, returning the new value."""
        ...

    @staticmethod
    def validate_key(key: str) -> str:
        if not isinstance(key, str) or not key.strip():
            raise ValueError(f"Invalid cache key: {key!r}")
        return key
