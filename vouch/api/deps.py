"""FastAPI dependency injection for the auth routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.auth.service import AccountService
from vouch.auth.types import AuthContext, Identity, MessagePublisher
from vouch.core.errors import AuthError, ErrorKind
from vouch.core.settings import AuthSettings
from vouch.crypto.jwt_manager import JWTManager
from vouch.db.engine import get_session


def _load_settings(request: Request) -> AuthSettings:
    return request.app.state.settings


def get_auth_context(request: Request) -> AuthContext:
    """The context the authentication middleware attached to this request."""
    context = getattr(request.state, "auth", None)
    return context if context is not None else AuthContext()


def require_identity(
    context: Annotated[AuthContext, Depends(get_auth_context)],
) -> Identity:
    """Reject anonymous requests."""
    if context.identity is None:
        raise AuthError(ErrorKind.FORBIDDEN, "Authentication required")
    return context.identity


def require_publisher(request: Request) -> MessagePublisher:
    """The configured broker publisher, or 503 when there is none."""
    publisher = getattr(request.app.state, "publisher", None)
    if publisher is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return publisher


def get_account_service(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[AuthSettings, Depends(_load_settings)],
) -> AccountService:
    jwt_manager: JWTManager = request.app.state.jwt_manager
    return AccountService(
        db,
        settings,
        jwt_manager=jwt_manager,
        publisher=getattr(request.app.state, "publisher", None),
    )
