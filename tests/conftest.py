import os

# settings are read at import time; point them at an in-memory database before importing app.*
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import re
import time
import uuid
from typing import Optional

import jwt
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base
from app.repos import users as users_repo
from app.auth.jwt import ALGO
from app.config import get_settings
from app.domain.errors import NotificationError


class RecordingSender:
    """Stands in for the SMS provider; keeps every message it was asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send(self, phone_number: str, message: str) -> None:
        if self.fail:
            raise NotificationError("provider down")
        self.sent.append((phone_number, message))

    def last_code(self) -> str:
        _, body = self.sent[-1]
        return re.search(r"\b(\d{6})\b", body).group(1)


# A single shared connection keeps the in-memory schema alive for the whole test.
@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def sender():
    return RecordingSender()


# ---------- helpers ----------
async def mk_user(
    db,
    email: str,
    *,
    phone: Optional[str] = "+15550001111",
    two_fa: bool = False,
    is_phone_verified: bool = False,
    password_hash: Optional[str] = None,
) -> uuid.UUID:
    u = await users_repo.create_user(
        db,
        email=email,
        name=email.split("@")[0],
        phone=phone,
        two_fa=two_fa,
        is_phone_verified=is_phone_verified,
        password_hash=password_hash,
    )
    await db.commit()
    return u.id


def auth_headers(user_id: uuid.UUID) -> dict:
    """Mint a session token the way the identity provider does."""
    s = get_settings()
    now = int(time.time())
    claims = {"iss": s.APP_NAME, "aud": s.APP_NAME, "iat": now, "exp": now + 300, "sub": str(user_id)}
    token = jwt.encode(claims, s.JWT_SECRET, algorithm=ALGO)
    return {"Authorization": f"Bearer {token}"}
