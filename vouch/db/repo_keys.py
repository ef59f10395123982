"""Database operations for the JWT signing key."""

from sqlalchemy import Insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from vouch.db.models_keys import SigningKeyEntity


async def get_signing_key(
    session: AsyncSession, key_id: str
) -> SigningKeyEntity | None:
    """Return the signing key stored under ``key_id``."""
    stmt = select(SigningKeyEntity).where(SigningKeyEntity.id == key_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


def _insert_ignoring_conflict(dialect_name: str, key_id: str, material: bytes) -> Insert:
    """Build ``INSERT ... ON CONFLICT DO NOTHING`` for the session's dialect."""
    values = {"id": key_id, "encrypted_material": material}
    if dialect_name == "postgresql":
        return (
            postgresql.insert(SigningKeyEntity)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[SigningKeyEntity.id])
        )
    if dialect_name == "sqlite":
        return (
            sqlite.insert(SigningKeyEntity)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[SigningKeyEntity.id])
        )
    raise RuntimeError(f"insert-if-absent unsupported for {dialect_name}")


async def insert_key_if_absent(
    session: AsyncSession, key_id: str, material: bytes
) -> SigningKeyEntity:
    """Store ``material`` unless a key already exists, then return the stored row.

    Concurrent first-time callers all get back the same row: whichever insert
    landed first wins and the others are discarded by the conflict clause.
    """
    dialect_name = session.get_bind().dialect.name
    await session.execute(_insert_ignoring_conflict(dialect_name, key_id, material))
    stored = await get_signing_key(session, key_id)
    if stored is None:
        raise LookupError(f"signing key {key_id} vanished after insert")
    return stored
