# alembic/env.py
import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import async_engine_from_config

from royaltymeds.core.config import settings
from royaltymeds.core.db import Base
import royaltymeds.models  # noqa: F401  registers every table on Base.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

def _configure_kwargs(dialect_name: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # sqlite needs table rebuilds for ALTER; the pharmacy runs on MySQL
        "render_as_batch": dialect_name == "sqlite",
    }

def run_migrations_offline() -> None:
    url = make_url(settings.async_database_url)
    sync_url = url.set(drivername=url.drivername.split("+", 1)[0])
    context.configure(
        url=sync_url.render_as_string(hide_password=False),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(sync_url.get_backend_name()),
    )
    with context.begin_transaction():
        context.run_migrations()

def _migrate(connection) -> None:
    context.configure(connection=connection, **_configure_kwargs(connection.dialect.name))
    with context.begin_transaction():
        context.run_migrations()

async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        {"sqlalchemy.url": settings.async_database_url},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()

if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
