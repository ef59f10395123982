"""SQLAlchemy model for the envelope-encrypted JWT signing key."""

from datetime import datetime

from sqlalchemy import DateTime, LargeBinary, String, func
from sqlalchemy.orm import Mapped, mapped_column

from vouch.db.base import BaseEntity


class SigningKeyEntity(BaseEntity):
    """KMS-encrypted HMAC signing key, one row per fixed key id."""

    __tablename__ = "signing_keys"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    encrypted_material: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
