"""
Unit Tests for Delivery Retry
=============================
"""

import asyncio

import pytest

from mailotp_core.retry import DeliveryRetrier, RetryExhausted, RetryPolicy


class TestRetryPolicy:
    """Tests for the back-off schedule."""

    def test_default_schedule(self):
        """Defaults give three retries at 2s, 4s, 8s."""
        policy = RetryPolicy()

        assert policy.max_attempts == 4
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_max_delay_caps(self):
        """Delays never exceed max_delay."""
        policy = RetryPolicy(max_retries=10, max_delay=10.0)

        assert policy.delay_for(5) == 10.0

    def test_jitter_bounds(self):
        """Jitter stays within 50%-150% of the base delay."""
        policy = RetryPolicy(jitter=True)

        for _ in range(100):
            assert 2.0 <= policy.delay_for(2) <= 6.0

    def test_policy_is_immutable(self):
        """Policies are frozen values."""
        policy = RetryPolicy()

        with pytest.raises(Exception):
            policy.max_retries = 10

    def test_invalid_values(self):
        """Negative retries are rejected."""
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)


class TestDeliveryRetrier:
    """Tests for DeliveryRetrier.execute."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, sleeps):
        """Should not sleep when the first attempt works."""
        retrier = DeliveryRetrier(sleep=sleeps)
        call_count = 0

        async def succeed():
            nonlocal call_count
            call_count += 1
            return "sent"

        assert await retrier.execute(succeed) == "sent"
        assert call_count == 1
        assert sleeps.delays == []

    @pytest.mark.asyncio
    async def test_success_after_failure(self, sleeps):
        """Should retry and eventually succeed."""
        retrier = DeliveryRetrier(sleep=sleeps)
        call_count = 0

        async def fail_then_succeed(recipient, subject=None):
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ConnectionError("Temporary failure")
            return recipient, subject

        result = await retrier.execute(fail_then_succeed, "a@example.com", subject="Hi")

        assert result == ("a@example.com", "Hi")
        assert call_count == 3
        assert sleeps.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_exhaustion(self, sleeps):
        """Four attempts with 2s, 4s, 8s between them, then raise."""
        retrier = DeliveryRetrier(RetryPolicy(), sleep=sleeps)
        call_count = 0

        async def always_fail():
            nonlocal call_count
            call_count += 1
            raise ValueError(f"Failure {call_count}")

        with pytest.raises(RetryExhausted) as exc_info:
            await retrier.execute(always_fail)

        assert call_count == 4
        assert sleeps.delays == [2.0, 4.0, 8.0]
        assert exc_info.value.attempts == 4
        assert str(exc_info.value.last_exception) == "Failure 4"

    @pytest.mark.asyncio
    async def test_zero_retries(self, sleeps):
        """max_retries=0 makes a single attempt."""
        retrier = DeliveryRetrier(RetryPolicy(max_retries=0), sleep=sleeps)

        async def always_fail():
            raise ValueError("nope")

        with pytest.raises(RetryExhausted):
            await retrier.execute(always_fail)
        assert sleeps.delays == []

    @pytest.mark.asyncio
    async def test_cancellation_not_retried(self, sleeps):
        """Task cancellation propagates immediately."""
        retrier = DeliveryRetrier(sleep=sleeps)
        call_count = 0

        async def cancelled():
            nonlocal call_count
            call_count += 1
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await retrier.execute(cancelled)
        assert call_count == 1
