"""Alembic migration runner for the vouch schema.

The target database comes from ``sqlalchemy.url`` when the Alembic config
sets one, otherwise from ``DatabaseSettings``.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from vouch.core.settings import DatabaseSettings
from vouch.db.base import BaseEntity
from vouch.db import models_confirmation, models_keys, models_user  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = BaseEntity.metadata


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or DatabaseSettings().async_url


def _configure_and_run(**kwargs: object) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


async def _run_online() -> None:
    engine = create_async_engine(_database_url())
    try:
        async with engine.connect() as connection:
            await connection.run_sync(
                lambda conn: _configure_and_run(connection=conn)
            )
            await connection.commit()
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure_and_run(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
else:
    asyncio.run(_run_online())
