"""User repository for database CRUD operations."""

from datetime import date

import uuid_utils
from pydantic import BaseModel
from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.db.models_user import UserEntity, UserRole


class NewUserData(BaseModel):
    """Parameters for creating a user."""

    email: str
    password_hash: str
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    role: UserRole = UserRole.USER


async def get_user_by_email(session: AsyncSession, email: str) -> UserEntity | None:
    """Look up a user by email address (case-insensitive)."""
    stmt = select(UserEntity).where(UserEntity.email == email.lower())
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: str) -> UserEntity | None:
    """Look up a user by primary key."""
    stmt = select(UserEntity).where(UserEntity.id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def email_exists(session: AsyncSession, email: str) -> bool:
    """Return True if an account is registered under ``email``."""
    stmt = select(exists().where(UserEntity.email == email.lower()))
    result = await session.execute(stmt)
    return bool(result.scalar())


async def create_user(session: AsyncSession, data: NewUserData) -> UserEntity:
    """Insert a new, not yet enabled, account."""
    user = UserEntity(
        id=str(uuid_utils.uuid7()),
        email=data.email.lower(),
        first_name=data.first_name,
        last_name=data.last_name,
        date_of_birth=data.date_of_birth,
        password_hash=data.password_hash,
        role=data.role,
        locked=False,
        enabled=False,
    )
    session.add(user)
    await session.flush()
    return user


async def save_user(session: AsyncSession, user: UserEntity) -> UserEntity:
    """Flush pending changes on an attached user."""
    session.add(user)
    await session.flush()
    return user
