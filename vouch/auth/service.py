"""Account registration, login, enabling and header authorization."""

from datetime import date
from urllib.parse import urlencode

import structlog
from pydantic import BaseModel, EmailStr
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.auth.confirmation import ConfirmationTokenService
from vouch.auth.types import EmailVerificationDetails, Identity, MessagePublisher
from vouch.core.errors import AuthError, ErrorKind
from vouch.core.settings import AuthSettings
from vouch.crypto.jwt_manager import JWTManager
from vouch.crypto.password import hash_password, verify_password
from vouch.db.models_user import UserEntity
from vouch.db.repo_user import (
    NewUserData,
    create_user,
    email_exists,
    get_user_by_email,
    get_user_by_id,
    save_user,
)

logger = structlog.get_logger(__name__)


class RegistrationData(BaseModel):
    """Fields needed to open an account."""

    first_name: str
    last_name: str
    date_of_birth: date | None = None
    email: EmailStr
    password: str


def _user_exists(email: str) -> AuthError:
    return AuthError(ErrorKind.USER_EXISTS, f"User with email {email} already exists")


class AccountService:
    """Account operations around the token services.

    Works inside the caller's session. Only ``register`` commits itself;
    for everything else the caller commits.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: AuthSettings,
        jwt_manager: JWTManager | None = None,
        publisher: MessagePublisher | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._jwt = jwt_manager
        self._publisher = publisher

    def confirmation_tokens(self) -> ConfirmationTokenService:
        """Confirmation token service that enables accounts on confirm."""
        return ConfirmationTokenService(
            self._session,
            enable_account=self.enable_user,
            ttl_minutes=self._settings.confirmation_token_ttl_minutes,
        )

    async def _require_user(self, email: str) -> UserEntity:
        user = await get_user_by_email(self._session, email)
        if user is None:
            logger.warning("user_not_found", email=email)
            raise AuthError(ErrorKind.USER_NOT_FOUND, f"User not found with email {email}")
        return user

    async def register(self, data: RegistrationData) -> str:
        """Create a disabled account and publish its verification link.

        The account and its confirmation token are committed before the
        message goes out, so a published link always points at a stored token.
        """
        if self._publisher is None:
            raise RuntimeError("register requires a message publisher")
        email = data.email.lower()
        logger.info("registering_user", email=email)
        if await email_exists(self._session, email):
            logger.warning("user_already_exists", email=email)
            raise _user_exists(email)

        try:
            user = await create_user(
                self._session,
                NewUserData(
                    email=email,
                    password_hash=hash_password(data.password),
                    first_name=data.first_name,
                    last_name=data.last_name,
                    date_of_birth=data.date_of_birth,
                ),
            )
            token = await self.confirmation_tokens().create(user.email)
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            logger.warning("user_registered_concurrently", email=email)
            raise _user_exists(email) from exc

        details = EmailVerificationDetails(
            email=user.email,
            first_name=user.first_name,
            link=self.verification_link(token),
        )
        await self._publisher.publish(
            self._settings.notification_exchange,
            self._settings.verification_routing_key,
            details.model_dump(),
        )
        logger.info("verification_email_published", email=user.email)
        return f"Verification link was sent to email {user.email}"

    def verification_link(self, token: str) -> str:
        gateway = self._settings.gateway_url.rstrip("/")
        path = "/" + self._settings.confirmation_path.lstrip("/")
        return f"{gateway}{path}?{urlencode({'token': token})}"

    async def enable_user(self, email: str) -> None:
        """Mark the account for ``email`` as enabled."""
        user = await self._require_user(email)
        user.enabled = True
        await save_user(self._session, user)
        logger.info("user_enabled", email=user.email)

    async def login(self, email: str, password: str) -> str:
        """Check credentials and issue a bearer token."""
        if self._jwt is None:
            raise RuntimeError("login requires a JWT manager")
        logger.info("logging_in_user", email=email)
        user = await get_user_by_email(self._session, email)
        password_ok = verify_password(password, user.password_hash if user else None)
        if user is None or not password_ok:
            raise AuthError(ErrorKind.BAD_CREDENTIALS, "Bad credentials")
        if not user.enabled:
            raise AuthError(ErrorKind.BAD_CREDENTIALS, "User is disabled")
        if user.locked:
            raise AuthError(ErrorKind.BAD_CREDENTIALS, "User account is locked")
        return await self._jwt.issue(user.email)

    async def authorize(self, identity: Identity) -> dict[str, str]:
        """Headers identifying the caller to downstream services."""
        user = await get_user_by_id(self._session, identity.user_id)
        if user is None:
            raise AuthError(
                ErrorKind.USER_NOT_FOUND, f"User not found with email {identity.email}"
            )
        return {
            self._settings.user_id_header: user.id,
            self._settings.user_role_header: user.role.value,
        }
