"""
OTP Email Body
==============
Placeholder substitution for the OTP email.
"""

from pathlib import Path
from typing import Optional

import structlog

from mailotp_core.config import EmailSettings

logger = structlog.get_logger(__name__)

OTP_SUBJECT = "Your Verification Code"
DEFAULT_OTP_BODY = "<h3>Your verification code is: <b>{code}</b></h3>"


def load_template(settings: EmailSettings) -> Optional[str]:
    """
    Resolve the configured OTP body template.

    A readable file at ``otp_html_body_template_path`` wins over the inline
    template. Relative paths resolve against the working directory. The file
    is read on every call so edits apply without a restart.

    Returns:
        Template string, or None to use DEFAULT_OTP_BODY
    """
    if settings.otp_html_body_template_path:
        path = Path(settings.otp_html_body_template_path)
        if not path.is_absolute():
            path = Path.cwd() / path
        if path.is_file():
            return path.read_text(encoding="utf-8")
        logger.debug("OTP template file not found", path=str(path))

    return settings.otp_html_body_template or None


def render_otp_body(template: Optional[str], code: str, organization: str) -> str:
    """
    Substitute ``{code}`` and ``{organization}`` into ``template``.

    Plain replacement, so other braces in HTML or CSS are left alone.
    """
    if not template:
        return DEFAULT_OTP_BODY.replace("{code}", code)
    return template.replace("{code}", code).replace("{organization}", organization)
