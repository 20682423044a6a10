# tests/integration/conftest.py
# Object store and services against a throwaway SQLite file (aiosqlite driver).
# Each test gets its own database, blob root and clock.

import pytest  # type: ignore[import-not-found]
import pytest_asyncio  # type: ignore[import-not-found]
from sqlalchemy.pool import NullPool

from microtools.bootstrap import build_components
from microtools.config import settings
from microtools.db.base import create_engine_for, create_session_factory
from microtools.repositories.object_store import ObjectStore
from microtools.storage.blob_store import LocalBlobStore


@pytest_asyncio.fixture
async def session_factory(schema: str):
    engine = create_engine_for(schema, poolclass=NullPool, echo=False)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()


@pytest.fixture
def store(session_factory, clock) -> ObjectStore:
    return ObjectStore(session_factory=session_factory, clock=clock)


@pytest.fixture
def blobs(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "files")


@pytest.fixture
def components(session_factory, clock, blobs):
    return build_components(settings, session_factory=session_factory, clock=clock, blobs=blobs)
