from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional, Protocol

from ..models import Otp, OtpUseCase, User


class UserStore(Protocol):
    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]: ...

    async def update(self, user_id: uuid.UUID, **fields: Any) -> User: ...


class OtpStore(Protocol):
    async def create(
        self, *, user_id: uuid.UUID, code: str, use_case: OtpUseCase, expires_at: datetime
    ) -> Otp: ...

    async def find_first_matching(
        self, *, code: str, use_case: OtpUseCase, user_id: uuid.UUID
    ) -> Optional[Otp]: ...

    async def delete_by_id(self, otp_id: int) -> bool: ...


class NotificationSender(Protocol):
    async def send(self, phone_number: str, message: str) -> None: ...
