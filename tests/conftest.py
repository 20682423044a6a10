# tests/conftest.py
# Shared fixtures. Environment is pinned before any microtools module is imported
# so the module-level engine and settings never point at a real server.

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest  # type: ignore[import-not-found]

_SCRATCH = tempfile.mkdtemp(prefix="microtools-tests-")
os.environ.setdefault("DB_URL", f"sqlite:///{os.path.join(_SCRATCH, 'default.db')}")
os.environ.setdefault("FILES_DIR", os.path.join(_SCRATCH, "files"))
os.environ.setdefault("SWEEP_ENABLED", "false")
os.environ.setdefault("OTEL_ENABLED", "false")


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'objects.db'}"


@pytest.fixture
def schema(db_url: str) -> str:
    """Create the objects table synchronously; returns the database URL."""
    from sqlalchemy import create_engine

    from microtools.db.base import metadata
    from microtools.models import objects_table  # noqa: F401

    engine = create_engine(db_url)
    metadata.create_all(engine)
    engine.dispose()
    return db_url
