"""Database operations for email confirmation tokens."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.db.models_confirmation import ConfirmationTokenEntity


async def get_token(
    session: AsyncSession, token: str
) -> ConfirmationTokenEntity | None:
    """Look up a confirmation token by its value, always re-reading its state."""
    stmt = (
        select(ConfirmationTokenEntity)
        .where(ConfirmationTokenEntity.token == token)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def store_token(
    session: AsyncSession, entity: ConfirmationTokenEntity
) -> ConfirmationTokenEntity:
    """Persist a new confirmation token."""
    session.add(entity)
    await session.flush()
    return entity


async def mark_activated(session: AsyncSession, token: str) -> bool:
    """Flip ``activated`` to true only if it is still false.

    Returns False when another caller activated the token first.
    """
    stmt = (
        update(ConfirmationTokenEntity)
        .where(
            ConfirmationTokenEntity.token == token,
            ConfirmationTokenEntity.activated.is_(False),
        )
        .values(activated=True)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.flush()
    return result.rowcount == 1
