from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------- Base & naming ----------
class Base(DeclarativeBase):
    # Keep index/constraint names stable for cleaner migrations
    metadata = sa.MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s",
        }
    )


class OtpUseCase(str, enum.Enum):
    """Which flow a one-time code belongs to. Values are the stored wire codes."""

    PHONE_VERIFICATION = "PHV"
    DISABLE_TWO_FA = "D2FA"


# ---------- USERS ----------
class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    email: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    # never serialized; see UserOut for the outward projection
    password_hash: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    two_fa: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False, server_default=sa.false())
    is_phone_verified: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.false()
    )

    status: Mapped[str] = mapped_column(
        sa.Text,
        nullable=False,
        default="active",
        server_default=sa.text("'active'"),
    )  # 'active' | 'disabled'

    avatar_url: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )

    # fetch created_at on flush
    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("status in ('active','disabled')", name="users_status"),
    )


# ---------- ONE-TIME CODES ----------
class Otp(Base):
    __tablename__ = "otps"

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column(sa.Text, nullable=False)
    use_case: Mapped[str] = mapped_column(sa.Text, nullable=False)  # see OtpUseCase
    expires_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("use_case in ('PHV','D2FA')", name="otps_use_case"),
        Index("ix_otps_lookup", "user_id", "use_case", "code"),
        Index("ix_otps_expires_at", "expires_at"),
    )
