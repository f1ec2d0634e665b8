"""Alembic environment configuration"""

from alembic import context
from sqlmodel import SQLModel
import asyncio

from crm.core.config import get_settings
from crm.core.database import Database
import crm.models  # noqa: F401

# this is the Alembic Config object
config = context.config

target_metadata = SQLModel.metadata


def get_url() -> str:
    """Database URL from the alembic config, else from the application settings"""
    return config.get_main_option("sqlalchemy.url") or get_settings().DATABASE_URL


def run_migrations_offline():
    """Run migrations in 'offline' mode"""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    """Run migrations in 'online' mode on the application's async engine"""
    database = Database(get_url())
    async with database.engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await database.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
