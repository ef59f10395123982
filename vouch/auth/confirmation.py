"""Issue and redeem single-use email confirmation tokens."""

import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog
import uuid_utils
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.auth.types import AccountEnabler
from vouch.core.errors import AuthError, ErrorKind
from vouch.db.models_confirmation import ConfirmationTokenEntity
from vouch.db.repo_confirmation import get_token, mark_activated, store_token

logger = structlog.get_logger(__name__)

CONFIRMED_MESSAGE = "Email verified successfully"


def generate_token() -> str:
    """Generate a cryptographically random confirmation token."""
    return secrets.token_urlsafe(32)


def _is_expired(entity: ConfirmationTokenEntity, now: datetime) -> bool:
    expiry = entity.expires_at
    if expiry.tzinfo is None:
        now = now.replace(tzinfo=None)
    return expiry < now


class ConfirmationTokenService:
    """Confirmation tokens move from issued to activated exactly once."""

    def __init__(
        self,
        session: AsyncSession,
        enable_account: AccountEnabler,
        ttl_minutes: int,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._session = session
        self._enable_account = enable_account
        self._ttl = timedelta(minutes=ttl_minutes)
        self._clock = clock

    async def create(self, email: str) -> str:
        """Store a new unactivated token for ``email`` and return its value."""
        now = self._clock()
        entity = ConfirmationTokenEntity(
            id=str(uuid_utils.uuid7()),
            token=generate_token(),
            issued_at=now,
            expires_at=now + self._ttl,
            activated=False,
            user_email=email,
        )
        await store_token(self._session, entity)
        logger.info("confirmation_token_created", email=email)
        return entity.token

    async def confirm(self, token: str) -> str:
        """Activate ``token`` and enable the account it was issued for."""
        entity = await get_token(self._session, token)
        if entity is None:
            logger.warning("confirmation_token_not_found")
            raise AuthError(ErrorKind.TOKEN_NOT_FOUND, "Invalid verification link")
        if entity.activated:
            logger.warning("confirmation_token_already_activated", email=entity.user_email)
            raise AuthError(ErrorKind.ALREADY_ACTIVATED, "Email is already verified")
        if _is_expired(entity, self._clock()):
            logger.warning("confirmation_token_expired", email=entity.user_email)
            raise AuthError(ErrorKind.EXPIRED, "Verification link is expired")

        email = entity.user_email
        if not await mark_activated(self._session, token):
            logger.warning("confirmation_token_activation_lost_race", email=email)
            raise AuthError(ErrorKind.ALREADY_ACTIVATED, "Email is already verified")

        await self._enable_account(email)
        logger.info("email_verified", email=email)
        return CONFIRMED_MESSAGE
