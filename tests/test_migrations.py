"""
Tests for the alembic migrations and application startup
"""

from pathlib import Path
import asyncio

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlmodel import SQLModel, select

from crm.core.config import get_settings
from crm.core.database import Database
from crm.core.permissions import RoleName
from crm.main import create_app
from crm.models.role import Role
import crm.models  # noqa: F401

ROOT = Path(__file__).resolve().parents[1]


def alembic_config(db_path: Path) -> Config:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", f"sqlite+aiosqlite:///{db_path}")
    return config


def test_upgrade_head_matches_models(tmp_path):
    """Every model table and column exists after upgrading a blank database"""
    db_path = tmp_path / "migrated.db"
    command.upgrade(alembic_config(db_path), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    inspector = inspect(engine)
    assert set(SQLModel.metadata.tables) <= set(inspector.get_table_names())
    for name, table in SQLModel.metadata.tables.items():
        migrated = {column["name"] for column in inspector.get_columns(name)}
        assert migrated == set(table.columns.keys()), name
    engine.dispose()


def test_downgrade_base_drops_tables(tmp_path):
    db_path = tmp_path / "migrated.db"
    config = alembic_config(db_path)
    command.upgrade(config, "head")
    command.downgrade(config, "base")

    engine = create_engine(f"sqlite:///{db_path}")
    tables = set(inspect(engine).get_table_names())
    engine.dispose()
    assert not tables & set(SQLModel.metadata.tables)


@pytest.mark.asyncio
async def test_startup_seeds_roles_on_migrated_database(tmp_path):
    db_path = tmp_path / "migrated.db"
    # env.py drives its own event loop
    await asyncio.to_thread(command.upgrade, alembic_config(db_path), "head")
    database = Database(f"sqlite+aiosqlite:///{db_path}")
    app = create_app(get_settings(), database)

    async with app.router.lifespan_context(app):
        async with database.session() as session:
            result = await session.execute(select(Role))
            names = {role.name for role in result.scalars().all()}

    assert names == set(RoleName)
