"""Bearer token authentication for every inbound request."""

from collections.abc import Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from vouch.auth.types import AuthContext, ErrorReporter, Identity, UserLookup
from vouch.core.errors import AuthError, ErrorKind
from vouch.core.settings import BEARER_PREFIX
from vouch.crypto.jwt_manager import JWTManager
from vouch.db.models_user import UserEntity
from vouch.db.repo_user import get_user_by_email

logger = structlog.get_logger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


class SessionUserLookup:
    """``UserLookup`` that opens a short-lived session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_email(self, email: str) -> UserEntity | None:
        async with self._session_factory() as session:
            return await get_user_by_email(session, email)


def extract_bearer(header: str | None) -> str | None:
    """Return the token after ``Bearer ``, or None if the header has no such prefix."""
    if header is None or not header.startswith(BEARER_PREFIX):
        return None
    return header[len(BEARER_PREFIX) :]


class AuthenticationFilter:
    """Establishes the request identity from a bearer token, or withholds it.

    Requests without a bearer header pass through anonymously. Any
    authentication failure is handed to the error reporter and the request
    goes no further.
    """

    def __init__(
        self,
        jwt_manager: JWTManager,
        users: UserLookup,
        errors: ErrorReporter,
    ) -> None:
        self._jwt = jwt_manager
        self._users = users
        self._errors = errors

    async def __call__(
        self, request: Request, context: AuthContext, call_next: CallNext
    ) -> Response:
        token = extract_bearer(request.headers.get("Authorization"))
        if token is None:
            return await call_next(request)
        try:
            await self._authenticate(token, context)
        except AuthError as exc:
            logger.warning("authentication_failed", kind=exc.kind.value, reason=exc.message)
            return self._errors.report(request, exc)
        return await call_next(request)

    async def _authenticate(self, token: str, context: AuthContext) -> None:
        email = await self._jwt.extract_subject(token)
        if not email or context.is_authenticated:
            return

        user = await self._users.find_by_email(email)
        if user is None:
            raise AuthError(
                ErrorKind.USER_NOT_FOUND, f"User with email {email} not found"
            )
        if not await self._jwt.validate(token, user.email):
            raise AuthError(ErrorKind.TOKEN_INVALID, "JWT is invalid")

        context.identity = Identity.from_user(user)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Attaches a fresh ``AuthContext`` to ``request.state.auth`` and runs the filter."""

    def __init__(self, app: ASGIApp, auth_filter: AuthenticationFilter) -> None:
        super().__init__(app)
        self._filter = auth_filter

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        context = getattr(request.state, "auth", None)
        if context is None:
            context = AuthContext()
            request.state.auth = context
        return await self._filter(request, context, call_next)
