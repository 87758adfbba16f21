"""
Retry Backoff
=============
Exponential back-off retrier for message delivery.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_exception_type, stop_after_attempt

from .exceptions import RetryExhausted
from .policy import RetryPolicy

logger = structlog.get_logger(__name__)

T = TypeVar('T')


class DeliveryRetrier:
    """
    Runs a fallible async operation under a RetryPolicy.

    Every exception is retried the same way. The final failure is raised
    as RetryExhausted; there is no partial success. Task cancellation is
    never retried.

    Example:
        retrier = DeliveryRetrier(RetryPolicy(max_retries=3))
        await retrier.execute(sender.send, "a@example.com", subject, body)
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.policy.delay_for(retry_state.attempt_number)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        logger.warning(
            "Retrying delivery",
            operation=getattr(retry_state.fn, "__name__", repr(retry_state.fn)),
            attempt=retry_state.attempt_number,
            delay=retry_state.next_action.sleep,
            error=str(retry_state.outcome.exception()),
        )

    async def execute(self, operation: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Execute ``operation`` with retry.

        Args:
            operation: Async callable performing a single attempt
            *args: Positional arguments for operation
            **kwargs: Keyword arguments for operation

        Returns:
            Result of operation

        Raises:
            RetryExhausted: If every attempt fails
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(Exception),
            before_sleep=self._log_retry,
            sleep=self._sleep,
        )

        try:
            return await retrying(operation, *args, **kwargs)
        except RetryError as e:
            attempts = e.last_attempt.attempt_number
            last_exception = e.last_attempt.exception()
            logger.error(
                "Delivery retries exhausted",
                operation=getattr(operation, "__name__", repr(operation)),
                attempts=attempts,
                error=str(last_exception),
            )
            raise RetryExhausted(
                f"Failed after {attempts} attempts: {last_exception}",
                attempts=attempts,
                last_exception=last_exception,
            ) from last_exception
