"""Alembic environment configuration."""

from __future__ import annotations

import asyncio
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from credential_vault.config.settings import DEFAULT_DATABASE_URL, Settings
from credential_vault.infrastructure.db.metadata import metadata

config = context.config

# The runtime settings decide DATABASE_URL (environment first, then a local
# .env); a URL that callers set explicitly on the config wins over both.
if config.get_main_option("sqlalchemy.url") == DEFAULT_DATABASE_URL:
    runtime_url = Settings(_env_file=Path(__file__).resolve().parents[1] / ".env").database_url
    config.set_main_option("sqlalchemy.url", runtime_url.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = metadata


def _uses_async_driver(url: str) -> bool:
    return bool(make_url(url).get_dialect().is_async)


def run_migrations_offline() -> None:
    """Run migrations in offline mode."""

    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations with a sync or async engine depending on the URL driver."""

    url = config.get_main_option("sqlalchemy.url") or DEFAULT_DATABASE_URL
    if _uses_async_driver(url):
        asyncio.run(run_async_migrations())
        return

    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        do_run_migrations(connection)


def do_run_migrations(connection: Connection) -> None:
    """Configure and run migrations for an active DB connection."""

    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Create async connection and run migrations synchronously via run_sync."""

    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
