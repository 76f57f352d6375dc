from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

DIGITS = "0123456789"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def generate_otp(length: int = 6) -> str:
    """Fixed-length numeric code; leading zeros are kept."""
    if length < 1:
        raise ValueError("OTP length must be positive")
    return "".join(secrets.choice(DIGITS) for _ in range(length))


def get_expiry(ttl: timedelta, now: datetime | None = None) -> datetime:
    return (now or _now_utc()) + ttl


def is_expired(expires_at: datetime, now: datetime | None = None) -> bool:
    # some drivers (sqlite) hand back naive timestamps; they are stored as UTC
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= (now or _now_utc())
