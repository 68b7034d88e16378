"""
Alembic entry point for the reading store schema.

Migrations run on an asyncpg engine without pooling. The URL comes from
MigrationSettings, so DATABASE_URL may be set in the environment or in .env.
A connection passed in ``config.attributes["connection"]`` is used as is,
letting callers run an upgrade inside a connection they already hold.
Autogenerate compares column types and filters objects through
src.db.migration_policy.include_object.

CHANGELOG:
- 2026-10-18: URL from MigrationSettings, filters from migration_policy,
  accept a caller-provided connection (STORY-034)
- 2026-10-18: Compare column types; skip TimescaleDB internal schemas (STORY-025)
- 2026-02-14: Initial creation (STORY-008)

TODO:
- None
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from src.db.migration_policy import MigrationSettings, include_object
from src.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

_COMPARE_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "include_object": include_object,
}


def emit_sql() -> None:
    """Write the migration SQL to the script output instead of executing it."""
    context.configure(
        url=MigrationSettings().database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate(connection: Connection) -> None:
    """Run pending migrations on a synchronous connection."""
    context.configure(connection=connection, **_COMPARE_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


async def migrate_with_engine() -> None:
    """Open a NullPool asyncpg engine and run the migrations through it."""
    engine = create_async_engine(MigrationSettings().database_url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    emit_sql()
elif config.attributes.get("connection") is not None:
    migrate(config.attributes["connection"])
else:
    asyncio.run(migrate_with_engine())
