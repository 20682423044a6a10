# microtools/storage/blob_store.py
# Byte storage for file shares: one directory ("collection") per share id.
# The object store only ever holds the metadata.

from __future__ import annotations

import os
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Iterator, Protocol, runtime_checkable

COPY_CHUNK_SIZE = 1024 * 1024


class BlobTooLargeError(Exception):
    """Raised when a stream exceeds the per-blob size limit."""
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"blob exceeds {limit} bytes")


@runtime_checkable
class BlobStore(Protocol):
    """Collection-of-blobs storage keyed by an object id."""

    def create_collection(self, collection_id: str) -> bool: ...

    def save(self, collection_id: str, name: str, fileobj: BinaryIO, max_bytes: int | None = None) -> int: ...

    def path_for(self, collection_id: str, name: str) -> Path: ...

    def exists(self, collection_id: str, name: str) -> bool: ...

    def delete_collection(self, collection_id: str) -> bool: ...

    def collection_ids(self) -> Iterator[str]: ...

    def collection_age_seconds(self, collection_id: str) -> float | None: ...


def _check_segment(value: str) -> str:
    if not value or value in (".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise ValueError("invalid path segment")
    return value


class LocalBlobStore:
    """BlobStore on the local filesystem under ``root``."""

    def __init__(self, root: str | os.PathLike):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _collection_dir(self, collection_id: str) -> Path:
        return self.root / _check_segment(collection_id)

    def path_for(self, collection_id: str, name: str) -> Path:
        return self._collection_dir(collection_id) / _check_segment(name)

    def create_collection(self, collection_id: str) -> bool:
        """Claim a new, empty collection. False if the directory already exists."""
        try:
            self._collection_dir(collection_id).mkdir()
        except FileExistsError:
            return False
        return True

    def save(self, collection_id: str, name: str, fileobj: BinaryIO, max_bytes: int | None = None) -> int:
        """Stream ``fileobj`` into the collection; returns bytes written."""
        target = self.path_for(collection_id, name)
        target.parent.mkdir(parents=True, exist_ok=True)
        written = 0
        with open(target, "wb") as out:
            while True:
                chunk = fileobj.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if max_bytes is not None and written > max_bytes:
                    raise BlobTooLargeError(max_bytes)
                out.write(chunk)
        return written

    def exists(self, collection_id: str, name: str) -> bool:
        try:
            return self.path_for(collection_id, name).is_file()
        except ValueError:
            return False

    def delete_collection(self, collection_id: str) -> bool:
        """Remove the whole collection. Safe to call repeatedly."""
        target = self._collection_dir(collection_id)
        if not target.exists():
            return False
        shutil.rmtree(target)
        return True

    def collection_ids(self) -> Iterator[str]:
        for entry in self.root.iterdir():
            if entry.is_dir():
                yield entry.name

    def collection_age_seconds(self, collection_id: str) -> float | None:
        try:
            return time.time() - self._collection_dir(collection_id).stat().st_mtime
        except FileNotFoundError:
            return None
