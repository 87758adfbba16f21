"""
OTP Throttle Guard
==================
Minimum interval between OTP issuances to one recipient.
"""

import time
from typing import Callable, Optional

import structlog

from mailotp_core.cache import CacheStore
from .models import ThrottleRecord, throttle_key

logger = structlog.get_logger(__name__)


class ThrottleGuard:
    """
    Per-recipient send gate.

    A denied request is dropped, not queued. Stamps are stored with a TTL
    equal to the window so they expire on their own.
    """

    def __init__(
        self,
        store: CacheStore,
        window: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            store: Cache store holding last-sent stamps
            window: Minimum seconds between issuances
            clock: Wall-clock source (Unix seconds)
        """
        self.store = store
        self.window = window
        self._clock = clock

    def _is_fresh(self, last_sent: float, now: float) -> bool:
        return now - last_sent < self.window

    async def last_sent(self, recipient: str) -> Optional[ThrottleRecord]:
        raw = await self.store.get(throttle_key(recipient))
        if raw is None:
            return None
        try:
            return ThrottleRecord(recipient_key=recipient, last_sent_at=float(raw))
        except ValueError:
            logger.warning("Ignoring malformed throttle stamp", recipient=recipient)
            return None

    async def allow(self, recipient: str, now: Optional[float] = None) -> bool:
        """True if no issuance to ``recipient`` happened within the window."""
        now = self._clock() if now is None else now
        record = await self.last_sent(recipient)
        if record is None:
            return True
        return not self._is_fresh(record.last_sent_at, now)

    async def record(self, recipient: str, now: Optional[float] = None) -> None:
        """Overwrite the last-sent stamp."""
        now = self._clock() if now is None else now
        await self.store.set(throttle_key(recipient), repr(now), ttl=self.window)

    async def acquire(self, recipient: str, now: Optional[float] = None) -> bool:
        """
        Atomically claim the window for ``recipient``.

        Returns False without writing when a fresh stamp exists.
        """
        now = self._clock() if now is None else now
        key = throttle_key(recipient)

        if await self.store.set_if_absent(key, repr(now), ttl=self.window):
            return True

        # Stamp survived past its window (backend ignored TTL)
        record = await self.last_sent(recipient)
        if record is not None and self._is_fresh(record.last_sent_at, now):
            return False

        await self.store.set(key, repr(now), ttl=self.window)
        return True

    async def release(self, recipient: str) -> None:
        """Drop a claim taken by acquire."""
        await self.store.delete(throttle_key(recipient))
