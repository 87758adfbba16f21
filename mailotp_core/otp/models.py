"""
OTP Models
==========
Records, outcomes and cache key layout for the OTP lifecycle.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


def otp_key(recipient_or_key: str) -> str:
    """Cache key holding the pending code."""
    return f"{recipient_or_key}:otp-code"


def throttle_key(recipient: str) -> str:
    """Cache key holding the last-sent timestamp."""
    return f"{recipient}:otp-last-sent"


def attempts_key(recipient_or_key: str) -> str:
    """Cache key counting failed verification attempts."""
    return f"{recipient_or_key}:otp-attempts"


@dataclass(frozen=True)
class OtpRecord:
    """A pending code for a recipient or correlation key."""
    recipient_key: str
    code: str
    created_at: datetime

    def to_json(self) -> str:
        return json.dumps({"code": self.code, "created_at": self.created_at.isoformat()})

    @classmethod
    def from_json(cls, recipient_key: str, raw: str) -> "OtpRecord":
        data = json.loads(raw)
        return cls(
            recipient_key=recipient_key,
            code=data["code"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass(frozen=True)
class ThrottleRecord:
    """Last successful issuance to a recipient."""
    recipient_key: str
    last_sent_at: float  # Unix timestamp


class OtpOutcome(str, Enum):
    """Diagnostic outcome of an issue or verify call."""
    ISSUED = "issued"
    VERIFIED = "verified"
    CANCELLED = "cancelled"
    THROTTLED = "throttled"
    STORE_UNAVAILABLE = "store_unavailable"
    DELIVERY_FAILED = "delivery_failed"
    VERIFICATION_MISMATCH = "verification_mismatch"
    NO_PENDING_CODE = "no_pending_code"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    UNKNOWN_BACKEND = "unknown_backend"
    INTERNAL_ERROR = "internal_error"

    @property
    def ok(self) -> bool:
        return self in (OtpOutcome.ISSUED, OtpOutcome.VERIFIED)


@dataclass(frozen=True)
class OtpResult:
    """Outcome of an OTP operation; truthy on success."""
    outcome: OtpOutcome
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome.ok

    def __bool__(self) -> bool:
        return self.ok
