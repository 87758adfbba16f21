"""
OTP Issuance and Verification
=============================
Email one-time passcodes with throttling and single-use verification.
"""

from .models import (
    OtpRecord,
    ThrottleRecord,
    OtpOutcome,
    OtpResult,
    otp_key,
    throttle_key,
    attempts_key,
)
from .generator import generate_code, CodeGenerator
from .throttle import ThrottleGuard
from .template import DEFAULT_OTP_BODY, OTP_SUBJECT, load_template, render_otp_body
from .service import OtpService, create_otp_service

__all__ = [
    # Models
    "OtpRecord",
    "ThrottleRecord",
    "OtpOutcome",
    "OtpResult",
    "otp_key",
    "throttle_key",
    "attempts_key",
    # Generator
    "generate_code",
    "CodeGenerator",
    # Throttle
    "ThrottleGuard",
    # Template
    "DEFAULT_OTP_BODY",
    "OTP_SUBJECT",
    "load_template",
    "render_otp_body",
    # Service
    "OtpService",
    "create_otp_service",
]
