"""
Message Delivery
================
Transport sender and retrying email service.
"""

from .exceptions import DeliveryError
from .sender import EmailSender, SmtpEmailSender
from .service import EmailService

__all__ = [
    "DeliveryError",
    "EmailSender",
    "SmtpEmailSender",
    "EmailService",
]
