"""
mailotp-core
============
Email one-time passcodes: issuance, throttling, storage and resilient delivery.
"""

__version__ = "0.1.0"

# Retry
from mailotp_core.retry import (
    RetryPolicy,
    DeliveryRetrier,
    RetryExhausted,
)

# Configuration
from mailotp_core.config import EmailSettings, OtpPolicy

# Cache
from mailotp_core.cache import (
    CacheBackend,
    CacheStore,
    CacheStoreError,
    CacheUnavailable,
    InMemoryCacheStore,
    RedisCacheStore,
)

# Delivery
from mailotp_core.delivery import (
    DeliveryError,
    EmailSender,
    SmtpEmailSender,
    EmailService,
)

# OTP
from mailotp_core.otp import (
    OtpService,
    OtpOutcome,
    OtpResult,
    OtpRecord,
    ThrottleRecord,
    ThrottleGuard,
    CodeGenerator,
    generate_code,
    render_otp_body,
    create_otp_service,
)

# Logging
from mailotp_core.logging_config import setup_logging, get_logger

__all__ = [
    # Retry
    "RetryPolicy",
    "DeliveryRetrier",
    "RetryExhausted",
    # Configuration
    "EmailSettings",
    "OtpPolicy",
    # Cache
    "CacheBackend",
    "CacheStore",
    "CacheStoreError",
    "CacheUnavailable",
    "InMemoryCacheStore",
    "RedisCacheStore",
    # Delivery
    "DeliveryError",
    "EmailSender",
    "SmtpEmailSender",
    "EmailService",
    # OTP
    "OtpService",
    "OtpOutcome",
    "OtpResult",
    "OtpRecord",
    "ThrottleRecord",
    "ThrottleGuard",
    "CodeGenerator",
    "generate_code",
    "render_otp_body",
    "create_otp_service",
    # Logging
    "setup_logging",
    "get_logger",
]
