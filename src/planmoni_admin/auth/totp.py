"""TOTP two-factor helpers.

Codes are 6 digits, SHA1, 30-second period (standard authenticator apps).
Backup codes are 8-character alphanumeric (A-Z, 0-9), one-time use.
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime

import pyotp

from planmoni_admin.config import get_settings

TOTP_DIGITS = 6
TOTP_INTERVAL = 30

BACKUP_CODE_CHARSET = string.ascii_uppercase + string.digits
BACKUP_CODE_LENGTH = 8


def generate_secret() -> str:
    """Generate a random base32 TOTP secret."""
    return pyotp.random_base32()


def generate_backup_codes(count: int | None = None) -> list[str]:
    """Generate ``count`` random backup codes (default from settings)."""
    n = count if count is not None else get_settings().backup_code_count
    return [
        "".join(secrets.choice(BACKUP_CODE_CHARSET) for _ in range(BACKUP_CODE_LENGTH))
        for _ in range(n)
    ]


def _totp(secret: str) -> pyotp.TOTP:
    return pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)


def provisioning_uri(secret: str, account_name: str) -> str:
    """otpauth:// URI for QR enrolment."""
    return _totp(secret).provisioning_uri(name=account_name, issuer_name=get_settings().totp_issuer)


def is_valid_code_format(code: str) -> bool:
    """True for exactly six ASCII digits."""
    return len(code) == TOTP_DIGITS and code.isascii() and code.isdigit()


def verify_code(secret: str, code: str, for_time: datetime | None = None) -> bool:
    """Check a 6-digit code, allowing the configured number of steps of clock drift."""
    if not is_valid_code_format(code):
        return False
    kwargs = {"for_time": for_time} if for_time is not None else {}
    return _totp(secret).verify(code, valid_window=get_settings().totp_valid_window, **kwargs)


def consume_backup_code(backup_codes: list[str], code: str) -> list[str] | None:
    """Return the remaining codes if ``code`` is one of them, else None."""
    normalized = code.strip().upper()
    if normalized not in backup_codes:
        return None
    remaining = list(backup_codes)
    remaining.remove(normalized)
    return remaining
