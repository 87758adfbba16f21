"""
OTP Service
===========
Issues, throttles, delivers and verifies email one-time passcodes.

Lifecycle per (recipient, correlation key):
    NONE -> ISSUED -> NONE (verified, expired, or attempts exhausted)

Callers only ever see a bool (or an OtpResult via the ``*_detailed``
variants); store and transport errors are logged and reduced to an outcome.
"""

import asyncio
import hmac
import time
import weakref
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

import structlog

from mailotp_core.cache import CacheBackend, CacheStore, CacheStoreError, InMemoryCacheStore, RedisCacheStore
from mailotp_core.config import EmailSettings, OtpPolicy
from mailotp_core.delivery import DeliveryError, EmailService, SmtpEmailSender
from mailotp_core.retry import DeliveryRetrier
from .generator import CodeGenerator
from .models import OtpOutcome, OtpRecord, OtpResult, attempts_key, otp_key
from .template import OTP_SUBJECT, load_template, render_otp_body
from .throttle import ThrottleGuard

logger = structlog.get_logger(__name__)


class OtpService:
    """
    Single entry point for OTP issuance and verification.

    The backend argument selects one of the injected stores; a code must be
    verified against the same backend it was issued to.

    Example:
        service = OtpService(
            EmailService(SmtpEmailSender(settings)),
            stores={CacheBackend.MEMORY: InMemoryCacheStore()},
            settings=settings,
        )
        await service.issue("user@example.com")
        await service.verify("user@example.com", "482913")
    """

    def __init__(
        self,
        email_service: EmailService,
        stores: Mapping[CacheBackend, CacheStore],
        throttle_store: Optional[CacheStore] = None,
        settings: Optional[EmailSettings] = None,
        policy: Optional[OtpPolicy] = None,
        generator: Optional[CodeGenerator] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            email_service: Retrying email service used for delivery
            stores: Cache store per backend
            throttle_store: Store for last-sent stamps; defaults to the
                REMOTE store when configured, else MEMORY
            settings: Organization name and template source
            policy: TTL, throttle window and verification bound
            generator: Code generator
            clock: Wall-clock source (Unix seconds)
        """
        if not stores:
            raise ValueError("At least one cache store is required")

        self.email_service = email_service
        self.stores = dict(stores)
        self.settings = settings or EmailSettings()
        self.policy = policy or OtpPolicy()
        self.generator = generator or CodeGenerator(self.policy.code_length)
        self._clock = clock

        if throttle_store is None:
            throttle_store = self.stores.get(CacheBackend.REMOTE)
        if throttle_store is None:
            throttle_store = self.stores.get(CacheBackend.MEMORY)
        if throttle_store is None:
            raise ValueError("No store available for throttle stamps")
        self.throttle = ThrottleGuard(
            throttle_store,
            window=self.policy.throttle_window_seconds,
            clock=clock,
        )
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[name] = lock
        return lock

    # -------------------------------------------------------------------------
    # Issue
    # -------------------------------------------------------------------------

    async def issue(
        self,
        recipient: str,
        correlation_key: Optional[str] = None,
        backend: CacheBackend = CacheBackend.MEMORY,
        cancel: Optional[asyncio.Event] = None,
    ) -> bool:
        """Generate, store and email a code. True once delivered."""
        result = await self.issue_detailed(recipient, correlation_key, backend, cancel)
        return result.ok

    async def issue_detailed(
        self,
        recipient: str,
        correlation_key: Optional[str] = None,
        backend: CacheBackend = CacheBackend.MEMORY,
        cancel: Optional[asyncio.Event] = None,
    ) -> OtpResult:
        """
        Issue a code, returning the diagnostic outcome.

        Args:
            recipient: Email address to deliver to; also the throttle key
            correlation_key: Stores the code under this key instead of recipient
            backend: Store holding the code
            cancel: Checked once on entry; a set event aborts with no side effects
        """
        if cancel is not None and cancel.is_set():
            logger.warning("Sending OTP cancelled", recipient=recipient)
            return OtpResult(OtpOutcome.CANCELLED, "Request cancelled")

        store = self.stores.get(backend)
        if store is None:
            logger.error("No cache store configured", backend=str(backend))
            return OtpResult(OtpOutcome.UNKNOWN_BACKEND, f"Backend {backend} not configured")

        lookup = correlation_key or recipient
        try:
            async with self._lock_for(f"issue:{recipient}"):
                return await self._issue(recipient, lookup, store)
        except CacheStoreError as e:
            logger.error(
                "OTP store unavailable",
                recipient=recipient,
                backend=e.backend,
                error=str(e),
            )
            return OtpResult(OtpOutcome.STORE_UNAVAILABLE, "Cache store unavailable")
        except asyncio.CancelledError:
            logger.warning("Sending OTP cancelled", recipient=recipient)
            raise
        except Exception:
            logger.exception("Error sending OTP", recipient=recipient)
            return OtpResult(OtpOutcome.INTERNAL_ERROR, "Unexpected error")

    async def _issue(self, recipient: str, lookup: str, store: CacheStore) -> OtpResult:
        if not await self.throttle.acquire(recipient):
            logger.warning("OTP request throttled", recipient=recipient)
            return OtpResult(OtpOutcome.THROTTLED, "Too many requests")

        try:
            code = self.generator.generate()
            record = OtpRecord(
                recipient_key=lookup,
                code=code,
                created_at=datetime.fromtimestamp(self._clock(), tz=timezone.utc),
            )
            await store.set(otp_key(lookup), record.to_json(), ttl=self.policy.code_ttl_seconds)
            await store.delete(attempts_key(lookup))

            body = render_otp_body(
                load_template(self.settings),
                code,
                self.settings.organization_name,
            )
            await self.email_service.deliver(recipient, OTP_SUBJECT, body)
        except DeliveryError as e:
            logger.error(
                "Error sending OTP",
                recipient=recipient,
                attempts=e.attempts,
                error=str(e.cause),
            )
            await self._discard(recipient, lookup, store)
            return OtpResult(OtpOutcome.DELIVERY_FAILED, "Delivery failed")
        except BaseException:
            await self._discard(recipient, lookup, store)
            raise

        try:
            await self.throttle.record(recipient)
        except CacheStoreError as e:
            # The stamp written by acquire still holds the window
            logger.warning("Failed to record OTP send time", recipient=recipient, error=str(e))

        logger.info(
            "OTP sent",
            recipient=recipient,
            key=lookup,
            backend=store.backend.value,
        )
        return OtpResult(OtpOutcome.ISSUED, "Code sent")

    async def _discard(self, recipient: str, lookup: str, store: CacheStore) -> None:
        """Remove an undelivered code and release the throttle claim."""
        try:
            await self.throttle.release(recipient)
        except CacheStoreError as e:
            logger.warning("Failed to release OTP throttle", recipient=recipient, error=str(e))

        try:
            await store.delete(otp_key(lookup))
            await store.delete(attempts_key(lookup))
        except CacheStoreError as e:
            logger.warning("Failed to discard undelivered OTP", key=lookup, error=str(e))

    # -------------------------------------------------------------------------
    # Verify
    # -------------------------------------------------------------------------

    async def verify(
        self,
        key: str,
        code: str,
        backend: CacheBackend = CacheBackend.MEMORY,
    ) -> bool:
        """Check and consume a code. True only on an exact match."""
        result = await self.verify_detailed(key, code, backend)
        return result.ok

    async def verify_detailed(
        self,
        key: str,
        code: str,
        backend: CacheBackend = CacheBackend.MEMORY,
    ) -> OtpResult:
        """
        Verify a code, returning the diagnostic outcome.

        Args:
            key: Recipient address or the correlation key used at issuance
            code: User-supplied code, compared exactly
            backend: Store the code was issued to
        """
        store = self.stores.get(backend)
        if store is None:
            logger.error("No cache store configured", backend=str(backend))
            return OtpResult(OtpOutcome.UNKNOWN_BACKEND, f"Backend {backend} not configured")

        try:
            async with self._lock_for(f"verify:{key}"):
                return await self._verify(key, code, store)
        except CacheStoreError as e:
            logger.error(
                "OTP store unavailable",
                key=key,
                backend=e.backend,
                error=str(e),
            )
            return OtpResult(OtpOutcome.STORE_UNAVAILABLE, "Cache store unavailable")
        except Exception:
            logger.exception("Error verifying OTP", key=key)
            return OtpResult(OtpOutcome.INTERNAL_ERROR, "Unexpected error")

    async def _verify(self, key: str, code: str, store: CacheStore) -> OtpResult:
        code_key = otp_key(key)
        raw = await store.get(code_key)

        if not raw:
            logger.warning("No OTP found", key=key)
            return OtpResult(OtpOutcome.NO_PENDING_CODE, "No pending code")

        record = OtpRecord.from_json(key, raw)
        if hmac.compare_digest(record.code.encode(), str(code or "").encode()):
            # Only the caller whose delete removed the record may succeed
            if not await store.delete(code_key):
                logger.warning("OTP already consumed", key=key)
                return OtpResult(OtpOutcome.NO_PENDING_CODE, "No pending code")
            await store.delete(attempts_key(key))
            logger.info("OTP verified", key=key)
            return OtpResult(OtpOutcome.VERIFIED, "Verified")

        max_attempts = self.policy.max_verify_attempts
        if max_attempts > 0:
            failures = await store.increment(
                attempts_key(key),
                ttl=self.policy.code_ttl_seconds,
            )
            if failures >= max_attempts:
                await store.delete(code_key)
                await store.delete(attempts_key(key))
                logger.warning("OTP attempts exhausted", key=key, attempts=failures)
                return OtpResult(OtpOutcome.ATTEMPTS_EXHAUSTED, "Too many attempts")

            logger.warning("OTP mismatch", key=key, remaining=max_attempts - failures)
            return OtpResult(
                OtpOutcome.VERIFICATION_MISMATCH,
                f"Invalid code. {max_attempts - failures} attempts remaining",
            )

        logger.warning("OTP mismatch", key=key)
        return OtpResult(OtpOutcome.VERIFICATION_MISMATCH, "Invalid code")


def create_otp_service(
    settings: Optional[EmailSettings] = None,
    policy: Optional[OtpPolicy] = None,
    redis_store: Optional[RedisCacheStore] = None,
) -> OtpService:
    """
    Wire an OtpService from configuration.

    The REMOTE backend is available only when ``redis_store`` is given or
    ``settings.redis_url`` is set.
    """
    settings = settings or EmailSettings.from_env()
    policy = policy or OtpPolicy.from_env()

    stores = {CacheBackend.MEMORY: InMemoryCacheStore()}
    if redis_store is None and settings.redis_url:
        redis_store = RedisCacheStore.from_url(settings.redis_url)
    if redis_store is not None:
        stores[CacheBackend.REMOTE] = redis_store

    email_service = EmailService(
        SmtpEmailSender(settings),
        DeliveryRetrier(policy.retry),
    )
    return OtpService(email_service, stores, settings=settings, policy=policy)
