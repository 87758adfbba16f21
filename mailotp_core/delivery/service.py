"""
Email Service
=============
Resilient delivery of pre-rendered HTML email.
"""

import asyncio
from typing import Optional

import structlog

from mailotp_core.retry import DeliveryRetrier, RetryExhausted
from .exceptions import DeliveryError
from .sender import EmailSender

logger = structlog.get_logger(__name__)


class EmailService:
    """Wraps an EmailSender with a DeliveryRetrier."""

    def __init__(self, sender: EmailSender, retrier: Optional[DeliveryRetrier] = None):
        self.sender = sender
        self.retrier = retrier or DeliveryRetrier()

    async def deliver(self, recipient: str, subject: str, html_body: str) -> None:
        """
        Send with retry.

        Raises:
            DeliveryError: If every attempt fails
        """
        try:
            await self.retrier.execute(self.sender.send, recipient, subject, html_body)
        except RetryExhausted as e:
            raise DeliveryError(
                f"Delivery to {recipient} failed: {e}",
                recipient=recipient,
                attempts=e.attempts,
                cause=e.last_exception,
            ) from e

    async def send_email(
        self,
        recipient: str,
        subject: str,
        html_body: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> bool:
        """
        Send an arbitrary email; never raises.

        Returns:
            True once the message was accepted by the transport
        """
        if cancel is not None and cancel.is_set():
            logger.warning("Sending email cancelled", recipient=recipient)
            return False

        try:
            await self.deliver(recipient, subject, html_body)
        except DeliveryError as e:
            logger.error(
                "Error sending email",
                recipient=recipient,
                attempts=e.attempts,
                error=str(e.cause),
            )
            return False

        logger.info("Email sent", recipient=recipient)
        return True
