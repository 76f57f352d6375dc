from __future__ import annotations
import uuid
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..models import User


async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    res = await db.execute(select(User).where(User.id == user_id))
    return res.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    password_hash: Optional[str] = None,
    two_fa: bool = False,
    is_phone_verified: bool = False,
) -> User:
    user = User(
        name=name or "User",
        email=email,
        phone=phone,
        password_hash=password_hash,
        two_fa=two_fa,
        is_phone_verified=is_phone_verified,
    )
    db.add(user)
    await db.flush()
    return user


class SqlUserStore:
    """User lookups and flag updates bound to one session; the caller owns the transaction."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await get_by_id(self.db, user_id)

    async def update(self, user_id: uuid.UUID, **fields: Any) -> User:
        user = await get_by_id(self.db, user_id)
        if user is None:
            raise LookupError(f"user {user_id} not found")
        for key, value in fields.items():
            setattr(user, key, value)
        await self.db.flush()
        return user
