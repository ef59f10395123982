"""Reply handler for user lookups arriving over the message broker."""

import uuid
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vouch.auth.types import UserView
from vouch.db.repo_user import get_user_by_id

logger = structlog.get_logger(__name__)


async def handle_user_request(session: AsyncSession, user_id: str) -> UserView | None:
    """Return the user's public view, or None for a malformed or unknown id.

    Never raises for bad input: the listener must keep consuming.
    """
    try:
        uuid.UUID(user_id)
    except (TypeError, ValueError):
        logger.warning("user_request_malformed_id", user_id=user_id)
        return None

    user = await get_user_by_id(session, user_id)
    if user is None:
        logger.warning("user_request_not_found", user_id=user_id)
        return None
    return UserView.model_validate(user)


class UserRequestListener:
    """Answers user lookups from the broker, one session per message."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def __call__(self, user_id: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            view = await handle_user_request(session, user_id)
        return view.model_dump(mode="json") if view is not None else None
