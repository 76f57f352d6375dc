import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...models import User


class SetTwoFAIn(BaseModel):
    set_2fa: bool


class TokenIn(BaseModel):
    # any string is accepted; one that matches no stored code is rejected as an invalid OTP
    token: str


class SuccessOut(BaseModel):
    success: bool = True


class UserOut(BaseModel):
    """Outward view of a user. Fields are copied one by one; anything not listed here is never exposed."""
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    two_fa: bool
    is_phone_verified: bool
    status: str
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, u: User) -> "UserOut":
        return cls(
            id=u.id,
            name=u.name,
            email=u.email,
            phone=u.phone,
            two_fa=u.two_fa,
            is_phone_verified=u.is_phone_verified,
            status=u.status,
            avatar_url=u.avatar_url,
            created_at=u.created_at,
        )


class UserInfoOut(BaseModel):
    success: bool = True
    user: UserOut


class ErrorOut(BaseModel):
    detail: str
    code: Optional[str] = Field(default=None, description="user_not_found | otp_invalid | otp_expired")
