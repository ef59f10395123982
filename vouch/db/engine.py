"""Async engine construction and the per-request session dependency."""

from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vouch.core.settings import DatabaseSettings


def build_session_factory(
    db: DatabaseSettings | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Session factory over a pooled asyncpg engine.

    Loaded objects stay readable after their session commits.
    """
    db = db or DatabaseSettings()
    engine = create_async_engine(
        db.async_url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_pre_ping=True,
    )
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """One session per request, committed when the handler returns normally."""
    factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
