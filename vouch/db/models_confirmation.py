"""SQLAlchemy model for email confirmation tokens."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from vouch.db.base import BaseEntity


class ConfirmationTokenEntity(BaseEntity):
    """Single-use, time-bounded token proving control of an email address."""

    __tablename__ = "confirmation_tokens"

    id: Mapped[str] = mapped_column(String(48), primary_key=True)
    token: Mapped[str] = mapped_column(
        String(128), unique=True, nullable=False, index=True
    )
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    activated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_email: Mapped[str] = mapped_column(String(255), nullable=False)
