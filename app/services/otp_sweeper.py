from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from ..repos.otps import SqlOtpStore
from ..observability.metrics import OTP_PURGED
from .otp import _now_utc


async def purge_expired_otps(db: AsyncSession, *, batch: int = 500, now: Optional[datetime] = None) -> int:
    """
    Delete at most `batch` one-time codes whose expires_at is in the past and commit.
    Validation never removes an expired code, so without this they accumulate.
    Returns the number of rows removed.
    """
    purged = await SqlOtpStore(db).delete_expired(now=now or _now_utc(), batch=batch)
    if not purged:
        await db.rollback()
        return 0
    await db.commit()
    OTP_PURGED.inc(purged)
    return purged
