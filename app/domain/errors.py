from __future__ import annotations

import enum


class AccountErrorKind(str, enum.Enum):
    USER_NOT_FOUND = "user_not_found"
    OTP_INVALID = "otp_invalid"
    OTP_EXPIRED = "otp_expired"


# Outward messages are kept stable for existing clients.
_MESSAGES = {
    AccountErrorKind.USER_NOT_FOUND: "User not found",
    AccountErrorKind.OTP_INVALID: "Invalid OTP",
    AccountErrorKind.OTP_EXPIRED: "Expired token",
}


class AccountError(Exception):
    """Rejection of an account operation. Always surfaced as a not-found style response."""

    def __init__(self, kind: AccountErrorKind) -> None:
        self.kind = kind
        self.message = _MESSAGES[kind]
        super().__init__(self.message)


class NotificationError(Exception):
    """The SMS provider failed or did not answer in time."""
