"""
Shared fixtures and test doubles.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from mailotp_core.cache import CacheBackend, CacheUnavailable, InMemoryCacheStore, RedisCacheStore
from mailotp_core.config import EmailSettings, OtpPolicy
from mailotp_core.delivery import EmailService
from mailotp_core.otp import CodeGenerator, OtpService
from mailotp_core.retry import DeliveryRetrier, RetryPolicy


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Minimal async stand-in for redis.asyncio.Redis."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock or FakeClock()
        self.data: Dict[str, Tuple[str, Optional[float]]] = {}
        self.closed = False

    def _live(self, name: str) -> Optional[str]:
        entry = self.data.get(name)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self.clock() >= expires_at:
            del self.data[name]
            return None
        return value

    async def set(self, name, value, px=None, nx=False):
        if nx and self._live(name) is not None:
            return None
        expires_at = self.clock() + px / 1000 if px else None
        self.data[name] = (str(value), expires_at)
        return True

    async def get(self, name):
        value = self._live(name)
        return value.encode() if value is not None else None

    async def delete(self, *names):
        removed = 0
        for name in names:
            if self.data.pop(name, None) is not None:
                removed += 1
        return removed

    async def incr(self, name):
        current = self._live(name)
        count = int(current) + 1 if current is not None else 1
        expires_at = self.data[name][1] if current is not None else None
        self.data[name] = (str(count), expires_at)
        return count

    async def aclose(self):
        self.closed = True


class BrokenRedis(FakeRedis):
    """Every call fails as if the server were unreachable."""

    async def set(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def get(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def delete(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def incr(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")


class YieldingRedis(FakeRedis):
    """Yields to the event loop after each read, like a network round trip."""

    async def get(self, name):
        value = await super().get(name)
        await asyncio.sleep(0)
        return value


class FlakyThrottleStore(InMemoryCacheStore):
    """Claims work but plain writes fail."""

    async def set(self, key, value, ttl=None):
        raise CacheUnavailable("Connection refused", backend="remote", key=key)


class RecordingSender:
    """Captures messages; optionally fails the first ``failures`` attempts."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.attempts = 0
        self.sent: List[Tuple[str, str, str]] = []

    async def send(self, recipient: str, subject: str, html_body: str) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError(f"SMTP unavailable (attempt {self.attempts})")
        self.sent.append((recipient, subject, html_body))


class FixedCodeGenerator(CodeGenerator):
    """Returns codes from a fixed sequence."""

    def __init__(self, *codes: str):
        super().__init__()
        self.codes = list(codes)

    def generate(self) -> str:
        return self.codes.pop(0)


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def memory_store(clock):
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def remote_store(fake_redis):
    return RedisCacheStore(fake_redis)


@pytest.fixture
def settings():
    return EmailSettings(
        from_email="no-reply@acme.test",
        organization_name="Acme",
        otp_html_body_template="<h3>{code} for {organization}</h3>",
    )


def build_service(
    sender,
    stores,
    clock,
    sleeps,
    settings=None,
    policy=None,
    codes=("482913", "771204", "350018", "904417"),
    throttle_store=None,
):
    email_service = EmailService(sender, DeliveryRetrier(RetryPolicy(), sleep=sleeps))
    return OtpService(
        email_service,
        stores=stores,
        settings=settings or EmailSettings(organization_name="Acme"),
        policy=policy or OtpPolicy(),
        generator=FixedCodeGenerator(*codes),
        clock=clock,
        throttle_store=throttle_store,
    )


@pytest.fixture
def service(sender, memory_store, remote_store, clock, sleeps, settings):
    return build_service(
        sender,
        {CacheBackend.MEMORY: memory_store, CacheBackend.REMOTE: remote_store},
        clock,
        sleeps,
        settings=settings,
    )
