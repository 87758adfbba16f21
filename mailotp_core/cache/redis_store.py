"""
Redis Cache Store
=================
Shared cache store backed by ``redis.asyncio``.
"""

from typing import Optional, Union

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .base import CacheBackend, CacheStore
from .exceptions import CacheUnavailable

logger = structlog.get_logger(__name__)


def _ttl_ms(ttl: Optional[float]) -> Optional[int]:
    if ttl is None:
        return None
    return max(1, int(ttl * 1000))


def _decode(value: Union[bytes, str, None]) -> Optional[str]:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisCacheStore(CacheStore):
    """
    Redis-backed cache store.

    Every RedisError is surfaced as CacheUnavailable so callers can tell
    "no value" apart from "store unreachable".
    """

    backend = CacheBackend.REMOTE

    def __init__(self, redis_client: Redis, prefix: str = ""):
        """
        Args:
            redis_client: Async Redis client
            prefix: Optional namespace prepended to every key
        """
        self.redis = redis_client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "", **kwargs) -> "RedisCacheStore":
        """Build a store with its own connection pool."""
        return cls(Redis.from_url(url, decode_responses=True, **kwargs), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{self.validate_key(key)}"

    def _unavailable(self, op: str, key: str, exc: Exception) -> CacheUnavailable:
        logger.error("Redis operation failed", op=op, key=key, error=str(exc))
        return CacheUnavailable(f"{op} failed: {exc}", backend=self.backend.value, key=key)

    async def set(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        full_key = self._key(key)
        try:
            await self.redis.set(full_key, value, px=_ttl_ms(ttl))
        except RedisError as e:
            raise self._unavailable("set", key, e) from e

    async def get(self, key: str) -> Optional[str]:
        full_key = self._key(key)
        try:
            return _decode(await self.redis.get(full_key))
        except RedisError as e:
            raise self._unavailable("get", key, e) from e

    async def delete(self, key: str) -> bool:
        full_key = self._key(key)
        try:
            return bool(await self.redis.delete(full_key))
        except RedisError as e:
            raise self._unavailable("delete", key, e) from e

    async def set_if_absent(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        full_key = self._key(key)
        try:
            # SET NX PX is a single atomic command
            return bool(await self.redis.set(full_key, value, px=_ttl_ms(ttl), nx=True))
        except RedisError as e:
            raise self._unavailable("set_if_absent", key, e) from e

    async def increment(self, key: str, ttl: Optional[float] = None) -> int:
        full_key = self._key(key)
        try:
            if ttl is not None:
                # Seed with the TTL first; INCR keeps an existing expiry
                await self.redis.set(full_key, 0, px=_ttl_ms(ttl), nx=True)
            return int(await self.redis.incr(full_key))
        except RedisError as e:
            raise self._unavailable("increment", key, e) from e

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self.redis.aclose()
