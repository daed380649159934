"""Alembic environment for the orders and referral ledgers.

Both services share one database and one ``Base.metadata``. The URL always
comes from ``Settings.DATABASE_URL`` (normalized to psycopg), never from
alembic.ini, so migrations hit the same database as the running services.
"""
import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

import services.orders_service.models  # noqa: F401
import services.referral_service.models  # noqa: F401
from libs.common.config import get_settings
from libs.db.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
database_url = get_settings().DATABASE_URL


def _drop_empty_revision(migration_context, revision, directives) -> None:
    """`alembic revision --autogenerate` with no model changes writes nothing."""
    if getattr(config.cmd_opts, "autogenerate", False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        # Money columns are Numeric(12, 2) and rates Numeric(5, 2)
        compare_type=True,
        process_revision_directives=_drop_empty_revision,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    # SQLite cannot ALTER constraints in place
    _configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(database_url, poolclass=pool.NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
