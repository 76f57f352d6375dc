from __future__ import annotations
import uuid
from datetime import timedelta

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..db import get_db
from ..domain.ports import NotificationSender
from ..repos.otps import SqlOtpStore
from ..repos.users import SqlUserStore
from ..services.account import AccountService
from ..services.sms import get_sms_sender
from .jwt import session_token, verify_jwt

S = get_settings()


async def get_current_user_id(request: Request) -> uuid.UUID:
    """Resolve the caller from the session token. The user row itself is loaded by the service."""
    token = session_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        claims = verify_jwt(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")

    try:
        return uuid.UUID(str(claims.get("sub")))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")


def get_notifier() -> NotificationSender:
    return get_sms_sender()


def get_account_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationSender = Depends(get_notifier),
) -> AccountService:
    return AccountService(
        SqlUserStore(db),
        SqlOtpStore(db),
        notifier,
        otp_length=S.OTP_LENGTH,
        otp_ttl=timedelta(minutes=S.OTP_TTL_MINUTES),
    )
