# microtools/bootstrap.py
# Wires the store, the blob store and the sweeper together for the API process
# and the arq worker.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microtools.config import Settings
from microtools.db.base import AsyncSessionFactory
from microtools.jobs.sweeper import ExpirationSweeper
from microtools.repositories.object_store import Clock, ObjectStore
from microtools.services.files_service import FileSharesService
from microtools.storage.blob_store import BlobStore, LocalBlobStore


@dataclass
class Components:
    store: ObjectStore
    blobs: BlobStore
    files: FileSharesService
    sweeper: ExpirationSweeper


def build_components(
    settings: Settings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    clock: Optional[Clock] = None,
    blobs: Optional[BlobStore] = None,
) -> Components:
    store = ObjectStore(session_factory=session_factory or AsyncSessionFactory, clock=clock)
    blobs = blobs if blobs is not None else LocalBlobStore(settings.FILES_DIR)
    files = FileSharesService(
        store,
        blobs,
        default_days=settings.FILESHARE_DEFAULT_DAYS,
        max_files=settings.MAX_UPLOAD_FILES,
        max_bytes=settings.MAX_UPLOAD_BYTES,
    )
    # Lazy expiry and the sweep share one cascade into the blob store.
    store.set_expiry_callback(files.cleanup)

    async def reconcile() -> list[str]:
        return await files.reclaim_orphans(settings.ORPHAN_GRACE_SECONDS)

    sweeper = ExpirationSweeper(
        store,
        on_purged=files.cleanup,
        interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
        reconcile=reconcile,
    )
    return Components(store=store, blobs=blobs, files=files, sweeper=sweeper)
