# tests/api/conftest.py
# Drives the FastAPI app in-process with TestClient against a per-test SQLite file.

from dataclasses import dataclass

import pytest  # type: ignore[import-not-found]
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from microtools.bootstrap import Components, build_components
from microtools.config import settings
from microtools.db.base import create_engine_for, create_session_factory
from microtools.main_fastapi import create_app
from microtools.storage.blob_store import LocalBlobStore


@dataclass
class ApiHarness:
    client: TestClient
    clock: object
    components: Components


@pytest.fixture
def api(schema, clock, tmp_path):
    # NullPool: TestClient runs the app on its own event loop
    engine = create_engine_for(schema, poolclass=NullPool, echo=False)
    components = build_components(
        settings,
        session_factory=create_session_factory(engine),
        clock=clock,
        blobs=LocalBlobStore(tmp_path / "files"),
    )
    app = create_app(components=components, engine=engine, start_sweeper=False)
    with TestClient(app) as client:
        yield ApiHarness(client=client, clock=clock, components=components)


@pytest.fixture
def client(api) -> TestClient:
    return api.client
