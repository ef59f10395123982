"""Tests for user repository operations."""

from sqlalchemy.ext.asyncio import AsyncSession

from vouch.crypto.password import hash_password
from vouch.db.models_user import UserRole
from vouch.db.repo_user import (
    NewUserData,
    create_user,
    email_exists,
    get_user_by_email,
    get_user_by_id,
    save_user,
)


def _data(email: str = "Alice@Example.com") -> NewUserData:
    return NewUserData(
        email=email,
        password_hash=hash_password("secret123"),
        first_name="Alice",
        last_name="Liddell",
    )


class TestCreateUser:
    """Tests for create_user."""

    async def test_new_user_is_disabled_with_user_role(
        self, db_session: AsyncSession
    ) -> None:
        user = await create_user(db_session, _data())
        assert user.email == "alice@example.com"
        assert user.role is UserRole.USER
        assert user.enabled is False
        assert user.locked is False
        assert user.authorities == ["ROLE_USER"]

    async def test_ids_are_unique(self, db_session: AsyncSession) -> None:
        a = await create_user(db_session, _data("a@example.com"))
        b = await create_user(db_session, _data("b@example.com"))
        assert a.id != b.id


class TestLookups:
    """Tests for get_user_by_email, get_user_by_id and email_exists."""

    async def test_by_email_is_case_insensitive(
        self, db_session: AsyncSession
    ) -> None:
        created = await create_user(db_session, _data())
        found = await get_user_by_email(db_session, "ALICE@example.COM")
        assert found is not None
        assert found.id == created.id

    async def test_by_email_missing(self, db_session: AsyncSession) -> None:
        assert await get_user_by_email(db_session, "nobody@example.com") is None

    async def test_by_id(self, db_session: AsyncSession) -> None:
        created = await create_user(db_session, _data())
        found = await get_user_by_id(db_session, created.id)
        assert found is not None
        assert found.email == "alice@example.com"

    async def test_by_id_missing(self, db_session: AsyncSession) -> None:
        assert await get_user_by_id(db_session, "nope") is None

    async def test_email_exists(self, db_session: AsyncSession) -> None:
        await create_user(db_session, _data())
        assert await email_exists(db_session, "alice@example.com") is True
        assert await email_exists(db_session, "bob@example.com") is False


class TestSaveUser:
    """Tests for save_user."""

    async def test_persists_changes(self, db_session: AsyncSession) -> None:
        user = await create_user(db_session, _data())
        user.enabled = True
        await save_user(db_session, user)
        found = await get_user_by_id(db_session, user.id)
        assert found is not None
        assert found.enabled is True
