from __future__ import annotations
import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from ..models import Otp, OtpUseCase


class SqlOtpStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(
        self, *, user_id: uuid.UUID, code: str, use_case: OtpUseCase, expires_at: datetime
    ) -> Otp:
        otp = Otp(user_id=user_id, code=code, use_case=use_case.value, expires_at=expires_at)
        self.db.add(otp)
        # no commit here; caller's transaction should commit
        await self.db.flush()
        return otp

    async def find_first_matching(
        self, *, code: str, use_case: OtpUseCase, user_id: uuid.UUID
    ) -> Optional[Otp]:
        # first match by insertion order, not the most recent one
        res = await self.db.execute(
            select(Otp)
            .where(Otp.code == code, Otp.use_case == use_case.value, Otp.user_id == user_id)
            .order_by(Otp.id.asc())
            .limit(1)
        )
        return res.scalar_one_or_none()

    async def delete_by_id(self, otp_id: int) -> bool:
        """Delete one record. Returns False when another transaction already consumed it."""
        res = await self.db.execute(
            delete(Otp).where(Otp.id == otp_id).execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    async def delete_expired(self, *, now: datetime, batch: int = 500) -> int:
        ids = (
            await self.db.execute(
                select(Otp.id).where(Otp.expires_at <= now).order_by(Otp.id.asc()).limit(batch)
            )
        ).scalars().all()
        if not ids:
            return 0
        res = await self.db.execute(
            delete(Otp).where(Otp.id.in_(ids)).execution_options(synchronize_session=False)
        )
        return res.rowcount or 0
