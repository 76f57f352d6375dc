from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable

from ..domain.errors import AccountError, AccountErrorKind, NotificationError
from ..domain.ports import NotificationSender, OtpStore, UserStore
from ..domain.schemas.account import UserOut
from ..models import OtpUseCase, User
from ..observability.metrics import OTP_ISSUED, OTP_REJECTED, OTP_VALIDATED
from .otp import _now_utc, generate_otp, get_expiry, is_expired

logger = logging.getLogger(__name__)

MESSAGES = {
    OtpUseCase.DISABLE_TWO_FA: "Use this code {otp} to disable multifactor authentication on your account",
    OtpUseCase.PHONE_VERIFICATION: "Use this code {otp} to verify the phone number registered on your account",
}


class AccountService:
    """2FA toggling and phone verification for a single, already authenticated user.

    Stores only flush; committing or rolling back is left to whoever owns the session.
    Every operation returns ``{"success": True}`` or raises ``AccountError``.
    """

    def __init__(
        self,
        users: UserStore,
        otps: OtpStore,
        notifier: NotificationSender,
        *,
        otp_length: int = 6,
        otp_ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = _now_utc,
    ) -> None:
        self.users = users
        self.otps = otps
        self.notifier = notifier
        self.otp_length = otp_length
        self.otp_ttl = otp_ttl
        self.clock = clock

    async def _get_user(self, user_id: uuid.UUID) -> User:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise AccountError(AccountErrorKind.USER_NOT_FOUND)
        return user

    async def _issue_otp(self, user: User, use_case: OtpUseCase) -> None:
        if not user.phone:
            raise NotificationError(f"user {user.id} has no phone number on file")
        code = generate_otp(self.otp_length)
        await self.otps.create(
            user_id=user.id,
            code=code,
            use_case=use_case,
            expires_at=get_expiry(self.otp_ttl, self.clock()),
        )
        # a failed send propagates so the caller can roll back the unsent code
        await self.notifier.send(user.phone, MESSAGES[use_case].format(otp=code))
        OTP_ISSUED.labels(use_case=use_case.value).inc()
        logger.info("otp_issued", extra={"user_id": str(user.id), "use_case": use_case.value})

    async def _consume_otp(self, user_id: uuid.UUID, token: str, use_case: OtpUseCase) -> None:
        record = await self.otps.find_first_matching(code=token, use_case=use_case, user_id=user_id)
        if record is None:
            raise self._rejected(user_id, use_case, AccountErrorKind.OTP_INVALID)
        if is_expired(record.expires_at, self.clock()):
            # left in place; the sweeper purges expired codes
            raise self._rejected(user_id, use_case, AccountErrorKind.OTP_EXPIRED)
        if not await self.otps.delete_by_id(record.id):
            # consumed by a concurrent request between lookup and delete
            raise self._rejected(user_id, use_case, AccountErrorKind.OTP_INVALID)
        OTP_VALIDATED.labels(use_case=use_case.value).inc()

    def _rejected(self, user_id: uuid.UUID, use_case: OtpUseCase, kind: AccountErrorKind) -> AccountError:
        OTP_REJECTED.labels(use_case=use_case.value, reason=kind.value).inc()
        logger.info("otp_rejected", extra={"user_id": str(user_id), "use_case": use_case.value, "reason": kind.value})
        return AccountError(kind)

    async def set_two_fa(self, user_id: uuid.UUID, desired: bool) -> dict:
        """Enable 2FA immediately; disabling only starts an SMS verification step."""
        user = await self._get_user(user_id)

        if user.two_fa == desired:
            return {"success": True}

        if user.two_fa and not desired:
            await self._issue_otp(user, OtpUseCase.DISABLE_TWO_FA)
            return {"success": True}

        await self.users.update(user.id, two_fa=desired)
        return {"success": True}

    async def verify_phone(self, user_id: uuid.UUID) -> dict:
        user = await self._get_user(user_id)
        if user.is_phone_verified:
            return {"success": True}
        await self._issue_otp(user, OtpUseCase.PHONE_VERIFICATION)
        return {"success": True}

    async def validate_phone_verification(self, user_id: uuid.UUID, token: str) -> dict:
        await self._consume_otp(user_id, token, OtpUseCase.PHONE_VERIFICATION)
        await self.users.update(user_id, is_phone_verified=True)
        return {"success": True}

    async def disable_two_fa_verification(self, user_id: uuid.UUID, token: str) -> dict:
        await self._consume_otp(user_id, token, OtpUseCase.DISABLE_TWO_FA)
        await self.users.update(user_id, two_fa=False)
        return {"success": True}

    async def get_user_info(self, user_id: uuid.UUID) -> dict:
        user = await self._get_user(user_id)
        return {"success": True, "user": UserOut.from_model(user)}
