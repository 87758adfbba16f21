"""
In-Memory Cache Store
=====================
Process-local store with lazy TTL eviction.
"""

import asyncio
import time
from typing import Callable, Dict, Optional, Tuple

import structlog

from .base import CacheBackend, CacheStore

logger = structlog.get_logger(__name__)


class InMemoryCacheStore(CacheStore):
    """
    Process-local cache store.

    State is not shared between processes; use RedisCacheStore when
    several workers must see the same codes.
    """

    backend = CacheBackend.MEMORY

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 60.0,
    ):
        """
        Args:
            clock: Time source used for expiry
            sweep_interval: Seconds between full sweeps of expired entries
        """
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

    def _expires_at(self, ttl: Optional[float]) -> Optional[float]:
        if ttl is None:
            return None
        return self._clock() + ttl

    def _live(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def _sweep(self) -> None:
        now = self._clock()
        if now - self._last_sweep < self._sweep_interval:
            return

        expired = [
            key for key, (_, expires_at) in self._data.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._data[key]
        self._last_sweep = now

        if expired:
            logger.debug("Evicted expired cache entries", count=len(expired))

    async def set(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        self.validate_key(key)
        async with self._lock:
            self._sweep()
            self._data[key] = (value, self._expires_at(ttl))

    async def get(self, key: str) -> Optional[str]:
        self.validate_key(key)
        async with self._lock:
            return self._live(key)

    async def delete(self, key: str) -> bool:
        self.validate_key(key)
        async with self._lock:
            if self._live(key) is None:
                return False
            del self._data[key]
            return True

    async def set_if_absent(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        self.validate_key(key)
        async with self._lock:
            if self._live(key) is not None:
                return False
            self._data[key] = (value, self._expires_at(ttl))
            return True

    async def increment(self, key: str, ttl: Optional[float] = None) -> int:
        self.validate_key(key)
        async with self._lock:
            current = self._live(key)
            count = int(current) + 1 if current is not None else 1
            # TTL is set by the first increment only
            expires_at = (
                self._data[key][1] if current is not None else self._expires_at(ttl)
            )
            self._data[key] = (str(count), expires_at)
            return count
