# microtools/services/files_service.py
# File shares: metadata lives in the object store, bytes in the blob store.
# Termination order on every path is row first, then blob directory.

from __future__ import annotations

import asyncio
import tempfile
import zipfile
from datetime import timedelta
from pathlib import Path
from typing import Any, BinaryIO, Iterable, NamedTuple

from microtools import config
from microtools.middleware.error_handler import ConflictError, NotFoundError, ValidationError
from microtools.repositories.object_store import ObjectRef, ObjectStore, StoredObject
from microtools.schemas.payloads import FileShareData, ObjectType, SharedFile, to_payload
from microtools.services.base import ToolService
from microtools.storage.blob_store import BlobStore, BlobTooLargeError
from microtools.utils.formatting import format_file_size, safe_filename
from microtools.utils.logger import log_info
from microtools.utils.tokens import generate_id

RESERVE_ATTEMPTS = 5
ARCHIVE_SPOOL_BYTES = 8 * 1024 * 1024


class Upload(NamedTuple):
    filename: str
    fileobj: BinaryIO


def _unique_name(name: str, taken: set[str]) -> str:
    if name not in taken:
        return name
    stem, dot, ext = name.rpartition(".")
    if not stem:
        stem, dot, ext = name, "", ""
    n = 1
    while True:
        candidate = f"{stem}-{n}{dot}{ext}"
        if candidate not in taken:
            return candidate
        n += 1


def public_view(share: FileShareData) -> dict[str, Any]:
    return {
        "files": [
            {"name": f.name, "size": f.size, "sizeFormatted": format_file_size(f.size)}
            for f in share.files
        ]
    }


class FileSharesService(ToolService[FileShareData]):
    object_type = ObjectType.FILESHARE
    not_found_message = "Files not found."

    def __init__(
        self,
        store: ObjectStore,
        blobs: BlobStore,
        default_days: int = 3,
        max_files: int = 20,
        max_bytes: int | None = None,
    ):
        super().__init__(store)
        self._blobs = blobs
        self._default_days = default_days
        self._max_files = max_files
        self._max_bytes = max_bytes

    def expiry_days(self, requested: int | None) -> int:
        if requested in config.FILESHARE_EXPIRY_CHOICES:
            return requested
        return self._default_days

    async def _reserve_id(self) -> str:
        """Mint an id whose blob directory did not exist yet, so cleanup never touches another share."""
        for _ in range(RESERVE_ATTEMPTS):
            share_id = generate_id()
            if await asyncio.to_thread(self._blobs.create_collection, share_id):
                return share_id
        raise ConflictError("Could not allocate a file share id")

    async def create_share(self, uploads: Iterable[Upload], expiry_days: int | None = None) -> StoredObject:
        """Write the uploads under a fresh id, then create the metadata row with that id."""
        days = self.expiry_days(expiry_days)
        share_id = await self._reserve_id()
        files: list[SharedFile] = []
        try:
            for upload in uploads:
                if not upload.filename:
                    continue
                if len(files) >= self._max_files:
                    raise ValidationError(f"At most {self._max_files} files per share.")
                stored_name = _unique_name(safe_filename(upload.filename), {f.stored_name for f in files})
                size = await asyncio.to_thread(
                    self._blobs.save, share_id, stored_name, upload.fileobj, self._max_bytes
                )
                files.append(SharedFile(name=upload.filename, stored_name=stored_name, size=size))

            if not files:
                raise ValidationError("No files uploaded.")

            expires_at = self._store.now() + timedelta(days=days)
            share = FileShareData(files=files)
            obj = await self._store.create_with_id(share_id, self.object_type.value, to_payload(share), expires_at)
        except BlobTooLargeError as e:
            await asyncio.to_thread(self._blobs.delete_collection, share_id)
            raise ValidationError("File too large.", details={"max_bytes": e.limit}) from e
        except Exception:
            # The directory was created by _reserve_id for this call only.
            await asyncio.to_thread(self._blobs.delete_collection, share_id)
            raise

        log_info(f"FileSharesService: stored {len(files)} file(s) id={share_id} days={days}")
        return obj

    async def get_share(self, share_id: str) -> tuple[StoredObject, FileShareData]:
        return await self.load(share_id)

    async def file_path(self, share_id: str, filename: str) -> tuple[Path, SharedFile]:
        _, share = await self.load(share_id)
        for f in share.files:
            if f.name == filename and await asyncio.to_thread(self._blobs.exists, share_id, f.stored_name):
                return self._blobs.path_for(share_id, f.stored_name), f
        raise NotFoundError("File not found.")

    def _write_archive(self, share_id: str, share: FileShareData) -> BinaryIO:
        buffer = tempfile.SpooledTemporaryFile(max_size=ARCHIVE_SPOOL_BYTES)
        try:
            with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=5) as archive:
                for f in share.files:
                    if self._blobs.exists(share_id, f.stored_name):
                        archive.write(self._blobs.path_for(share_id, f.stored_name), arcname=f.name)
        except BaseException:
            buffer.close()
            raise
        buffer.seek(0)
        return buffer

    async def build_archive(self, share_id: str) -> BinaryIO:
        """Zip every stored file of the share, under its original name.

        Large archives spill to a temporary file; the caller closes the result.
        """
        _, share = await self.load(share_id)
        return await asyncio.to_thread(self._write_archive, share_id, share)

    async def delete_share(self, share_id: str) -> None:
        await self.load(share_id)
        await self._store.remove(share_id)
        await asyncio.to_thread(self._blobs.delete_collection, share_id)

    async def cleanup(self, ref: ObjectRef) -> None:
        """Cascade for lazily expired and swept rows: drop the share's blobs."""
        if ref.type == self.object_type.value:
            await asyncio.to_thread(self._blobs.delete_collection, ref.id)

    def _aged_collections(self, grace_seconds: float) -> list[str]:
        aged = []
        for collection_id in list(self._blobs.collection_ids()):
            age = self._blobs.collection_age_seconds(collection_id)
            if age is not None and age >= grace_seconds:
                aged.append(collection_id)
        return aged

    async def reclaim_orphans(self, grace_seconds: float) -> list[str]:
        """Delete blob directories whose row is gone (e.g. a crash between the two deletes).

        Directories younger than ``grace_seconds`` are left alone: an upload
        writes its files before the row exists.
        """
        removed = []
        for collection_id in await asyncio.to_thread(self._aged_collections, grace_seconds):
            if await self._store.get(collection_id) is None:
                await asyncio.to_thread(self._blobs.delete_collection, collection_id)
                removed.append(collection_id)
        if removed:
            log_info(f"FileSharesService: reclaimed {len(removed)} orphaned director(ies)")
        return removed
