"""
Configuration
=============
Environment-driven settings for email delivery and OTP policy.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from mailotp_core.retry import RetryPolicy


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_optional(name: str) -> Optional[str]:
    return os.getenv(name) or None


@dataclass
class EmailSettings:
    """SMTP connection and message settings."""
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = False      # Implicit TLS (port 465)
    smtp_start_tls: bool = True     # Upgrade with STARTTLS
    smtp_timeout: float = 20.0
    from_email: str = "no-reply@localhost"
    organization_name: str = ""
    otp_html_body_template: Optional[str] = None
    otp_html_body_template_path: Optional[str] = None
    redis_url: str = "redis://localhost:6379/0"

    @classmethod
    def from_env(cls) -> "EmailSettings":
        """Read settings from the environment at call time."""
        return cls(
            smtp_host=os.getenv("SMTP_HOST", "localhost"),
            smtp_port=int(os.getenv("SMTP_PORT", "587")),
            smtp_user=_env_optional("SMTP_USER"),
            smtp_password=_env_optional("SMTP_PASSWORD"),
            smtp_use_tls=_env_bool("SMTP_USE_TLS", False),
            smtp_start_tls=_env_bool("SMTP_START_TLS", True),
            smtp_timeout=float(os.getenv("SMTP_TIMEOUT", "20")),
            from_email=os.getenv("SMTP_FROM_EMAIL", "no-reply@localhost"),
            organization_name=os.getenv("ORGANIZATION_NAME", ""),
            otp_html_body_template=_env_optional("OTP_HTML_BODY_TEMPLATE"),
            otp_html_body_template_path=_env_optional("OTP_HTML_BODY_TEMPLATE_PATH"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        )


@dataclass
class OtpPolicy:
    """OTP lifecycle policy."""
    code_length: int = 6
    code_ttl_seconds: int = 300          # 5 minutes
    throttle_window_seconds: int = 60    # Min time between OTPs
    max_verify_attempts: int = 5         # 0 disables the bound
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_env(cls) -> "OtpPolicy":
        return cls(
            code_length=int(os.getenv("OTP_CODE_LENGTH", "6")),
            code_ttl_seconds=int(os.getenv("OTP_CODE_TTL_SECONDS", "300")),
            throttle_window_seconds=int(os.getenv("OTP_THROTTLE_WINDOW_SECONDS", "60")),
            max_verify_attempts=int(os.getenv("OTP_MAX_VERIFY_ATTEMPTS", "5")),
            retry=RetryPolicy(
                max_retries=int(os.getenv("OTP_DELIVERY_MAX_RETRIES", "3")),
                backoff_base=float(os.getenv("OTP_DELIVERY_BACKOFF_BASE", "2.0")),
            ),
        )
