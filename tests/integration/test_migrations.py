# tests/integration/test_migrations.py
# The Alembic history builds the same objects table the application code expects.

import pathlib

import pytest
from alembic import command as alembic_command
from alembic.config import Config as AlembicConfig
from sqlalchemy import create_engine, inspect

INI_PATH = pathlib.Path(__file__).resolve().parents[2] / "alembic.ini"


@pytest.mark.integration
def test_upgrade_head_creates_objects_table(db_url):
    cfg = AlembicConfig(str(INI_PATH))
    cfg.set_main_option("sqlalchemy.url", db_url)

    alembic_command.upgrade(cfg, "head")

    engine = create_engine(db_url)
    try:
        inspector = inspect(engine)
        columns = {c["name"]: c for c in inspector.get_columns("objects")}
        assert set(columns) == {"id", "type", "data", "created_at", "expires_at"}
        assert columns["expires_at"]["nullable"] is True
        assert "ix_objects_expires_at" in {ix["name"] for ix in inspector.get_indexes("objects")}
    finally:
        engine.dispose()

    alembic_command.downgrade(cfg, "base")
    engine = create_engine(db_url)
    try:
        assert "objects" not in inspect(engine).get_table_names()
    finally:
        engine.dispose()
