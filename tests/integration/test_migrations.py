"""Integration tests for the alembic migration history."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from siegekeeper.database import create_db_engine
from siegekeeper.models import Base

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def alembic_config(tmp_path):
    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{tmp_path / 'migrated.db'}")
    config.attributes["configure_logger"] = False
    return config


@pytest.fixture
def migrated_engine(alembic_config, tmp_path):
    command.upgrade(alembic_config, "head")
    engine = create_db_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
    try:
        yield engine
    finally:
        engine.dispose()


def test_upgrade_creates_every_model_table(migrated_engine):
    tables = set(inspect(migrated_engine).get_table_names())

    assert tables - {"alembic_version"} == set(Base.metadata.tables)


def test_migrated_columns_match_models(migrated_engine):
    inspector = inspect(migrated_engine)

    for name, table in Base.metadata.tables.items():
        migrated = {column["name"] for column in inspector.get_columns(name)}
        assert migrated == set(table.columns.keys()), name


def test_migrated_schema_keeps_cascades(migrated_engine):
    inspector = inspect(migrated_engine)

    for name in ("combatants", "monsters", "locations", "siege_state", "user_preferences"):
        (foreign_key,) = inspector.get_foreign_keys(name)
        assert foreign_key["referred_table"] == "campaigns"
        assert foreign_key["options"].get("ondelete") == "CASCADE"


def test_downgrade_removes_schema(alembic_config, migrated_engine):
    command.downgrade(alembic_config, "base")

    assert set(inspect(migrated_engine).get_table_names()) <= {"alembic_version"}
