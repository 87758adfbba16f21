"""
Email Sender
============
Transport collaborator and its aiosmtplib adapter.
"""

import ssl
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional, Protocol

import aiosmtplib
import structlog

from mailotp_core.config import EmailSettings

logger = structlog.get_logger(__name__)


class EmailSender(Protocol):
    """Single delivery attempt. Raises on failure."""

    async def send(self, recipient: str, subject: str, html_body: str) -> None:
        ...


class SmtpEmailSender:
    """
    SMTP sender using aiosmtplib.

    One connection per message; retries are the caller's concern.
    """

    def __init__(self, settings: EmailSettings, tls_context: Optional[ssl.SSLContext] = None):
        self.settings = settings
        self.tls_context = tls_context or ssl.create_default_context()

    def build_message(self, recipient: str, subject: str, html_body: str) -> EmailMessage:
        """Build a pre-rendered HTML message."""
        msg = EmailMessage()
        msg["From"] = formataddr((self.settings.organization_name, self.settings.from_email))
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(html_body, subtype="html")
        return msg

    async def send(self, recipient: str, subject: str, html_body: str) -> None:
        msg = self.build_message(recipient, subject, html_body)
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.settings.smtp_host,
                port=self.settings.smtp_port,
                username=self.settings.smtp_user,
                password=self.settings.smtp_password,
                use_tls=self.settings.smtp_use_tls,
                start_tls=self.settings.smtp_start_tls and not self.settings.smtp_use_tls,
                tls_context=self.tls_context,
                timeout=self.settings.smtp_timeout,
            )
        except aiosmtplib.SMTPException as e:
            logger.error("SMTP error while sending email", recipient=recipient, error=str(e))
            raise
