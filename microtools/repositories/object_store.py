# microtools/repositories/object_store.py
# Generic persisted mapping id -> (type, JSON data, created_at, expires_at)
# with lazy expiration on read and serialised per-object writes.

from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Iterator, NamedTuple, Optional

from sqlalchemy import delete, insert, literal, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microtools.db.base import AsyncSessionFactory
from microtools.middleware.error_handler import AppError, ConflictError, DatabaseError, ValidationError
from microtools.models.objects_table import objects
from microtools.observability.metrics import OBJECTS_CREATED, OBJECTS_EXPIRED
from microtools.repositories.locks import KeyedLocks
from microtools.utils.logger import log_exception, log_info
from microtools.utils.tokens import generate_id


class ObjectRef(NamedTuple):
    """Identifies a deleted object so dependent resources can be reclaimed."""
    id: str
    type: str


@dataclass(frozen=True)
class StoredObject:
    id: str
    type: str
    data: Any
    created_at: datetime
    expires_at: Optional[datetime] = None


Clock = Callable[[], datetime]
ExpiryCallback = Callable[[ObjectRef], Awaitable[None]]
Mutation = Callable[[Any], Any]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    return expires_at is not None and expires_at < now


def _to_object(row) -> StoredObject:
    return StoredObject(
        id=row["id"],
        type=row["type"],
        data=row["data"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
    )


@contextmanager
def _persistence_errors(operation: str) -> Iterator[None]:
    """Surface driver failures as DatabaseError; let application errors through."""
    try:
        yield
    except AppError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Object store {operation} failed") from e


class ObjectStore:
    """Repository for every tool's objects.

    ``get`` is the only way callers observe existence: it deletes an expired
    row before reporting it absent. Writes to one id are serialised through
    an in-process lock and, where the backend supports it, a row lock.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock | None = None,
        on_expired: ExpiryCallback | None = None,
    ):
        self._session_factory = session_factory or AsyncSessionFactory
        self._clock = clock or utcnow
        self._on_expired = on_expired
        self._locks = KeyedLocks()

    def now(self) -> datetime:
        return self._clock()

    def set_expiry_callback(self, callback: ExpiryCallback | None) -> None:
        self._on_expired = callback

    async def create(self, type_: str, data: Any, ttl: timedelta | None = None) -> StoredObject:
        """Persist ``data`` under a freshly minted id, optionally expiring after ``ttl``."""
        if ttl is not None and ttl <= timedelta(0):
            raise ValidationError("ttl must be positive")
        now = self.now()
        try:
            expires_at = now + ttl if ttl is not None else None
        except OverflowError as e:
            raise ValidationError("ttl is too large") from e
        return await self._insert(generate_id(), type_, data, now, expires_at)

    async def create_with_id(
        self,
        object_id: str,
        type_: str,
        data: Any,
        expires_at: datetime | None = None,
    ) -> StoredObject:
        """Persist under a caller-chosen id. Raises ConflictError if the id is taken."""
        if expires_at is not None and expires_at.tzinfo is None:
            raise ValueError("expires_at must be timezone-aware")
        return await self._insert(object_id, type_, data, self.now(), expires_at)

    async def _insert(
        self,
        object_id: str,
        type_: str,
        data: Any,
        created_at: datetime,
        expires_at: datetime | None,
    ) -> StoredObject:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    insert(objects).values(
                        id=object_id,
                        type=type_,
                        data=data,
                        created_at=created_at,
                        expires_at=expires_at,
                    )
                )
                await session.commit()
        except IntegrityError as e:
            raise ConflictError("Object id already exists") from e
        except SQLAlchemyError as e:
            raise DatabaseError("Object store create failed") from e

        OBJECTS_CREATED.labels(type=type_).inc()
        log_info(f"ObjectStore: created {type_} id={object_id}")
        return StoredObject(
            id=object_id,
            type=type_,
            data=copy.deepcopy(data),
            created_at=created_at,
            expires_at=expires_at,
        )

    async def get(self, object_id: str) -> StoredObject | None:
        """Return the object, or None if absent or expired (an expired row is deleted first)."""
        now = self.now()
        with _persistence_errors("get"):
            async with self._session_factory() as session:
                result = await session.execute(select(objects).where(objects.c.id == object_id))
                row = result.mappings().first()
                if row is None:
                    return None
                if not _is_expired(row["expires_at"], now):
                    return _to_object(row)

                # Conditional so a concurrent sweep or reader makes this a no-op.
                await session.execute(
                    delete(objects).where(objects.c.id == object_id, objects.c.expires_at < now)
                )
                await session.commit()

        await self._expired(ObjectRef(object_id, row["type"]))
        return None

    async def mutate(self, object_id: str, fn: Mutation) -> StoredObject | None:
        """Serialised read-modify-write of ``data``.

        ``fn`` receives a private copy of the current payload and returns the
        new one. If it raises, nothing is written. Returns None when the
        object is absent or expired.
        """
        async with self._locks.get(object_id):
            now = self.now()
            expired: ObjectRef | None = None
            updated: StoredObject | None = None
            with _persistence_errors("update"):
                async with self._session_factory() as session:
                    async with session.begin():
                        result = await session.execute(
                            select(objects).where(objects.c.id == object_id).with_for_update()
                        )
                        row = result.mappings().first()
                        if row is None:
                            return None
                        if _is_expired(row["expires_at"], now):
                            await session.execute(delete(objects).where(objects.c.id == object_id))
                            expired = ObjectRef(object_id, row["type"])
                        else:
                            new_data = fn(copy.deepcopy(row["data"]))
                            await session.execute(
                                update(objects).where(objects.c.id == object_id).values(data=new_data)
                            )
                            updated = StoredObject(
                                id=row["id"],
                                type=row["type"],
                                data=new_data,
                                created_at=row["created_at"],
                                expires_at=row["expires_at"],
                            )

        if expired is not None:
            await self._expired(expired)
            return None
        return updated

    async def update(self, object_id: str, new_data: Any) -> StoredObject | None:
        """Replace ``data`` wholesale. Timestamps, id and type are untouched."""
        return await self.mutate(object_id, lambda _current: new_data)

    async def take(self, object_id: str) -> StoredObject | None:
        """Delete and return in one statement, so at most one caller ever receives the row."""
        now = self.now()
        async with self._locks.get(object_id):
            with _persistence_errors("take"):
                async with self._session_factory() as session:
                    result = await session.execute(
                        delete(objects).where(objects.c.id == object_id).returning(*objects.c)
                    )
                    row = result.mappings().first()
                    await session.commit()

        if row is None:
            return None
        if _is_expired(row["expires_at"], now):
            await self._expired(ObjectRef(object_id, row["type"]))
            return None
        return _to_object(row)

    async def remove(self, object_id: str) -> bool:
        """Unconditional, idempotent delete. Returns whether a row existed."""
        async with self._locks.get(object_id):
            with _persistence_errors("remove"):
                async with self._session_factory() as session:
                    result = await session.execute(delete(objects).where(objects.c.id == object_id))
                    existed = result.rowcount > 0
                    await session.commit()
        return existed

    async def purge_expired(self) -> list[ObjectRef]:
        """Delete every row whose expires_at is strictly in the past; report what went."""
        now = self.now()
        with _persistence_errors("purge"):
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(objects)
                    .where(objects.c.expires_at.is_not(None), objects.c.expires_at < now)
                    .returning(objects.c.id, objects.c.type)
                )
                rows = result.all()
                await session.commit()

        purged = [ObjectRef(r.id, r.type) for r in rows]
        if purged:
            OBJECTS_EXPIRED.labels(path="sweep").inc(len(purged))
        return purged

    async def ping(self) -> None:
        """Round-trip to the database; raises DatabaseError when unreachable."""
        with _persistence_errors("ping"):
            async with self._session_factory() as session:
                await session.execute(select(literal(1)))

    async def _expired(self, ref: ObjectRef) -> None:
        OBJECTS_EXPIRED.labels(path="lazy").inc()
        log_info(f"ObjectStore: lazily expired {ref.type} id={ref.id}")
        if self._on_expired is None:
            return
        try:
            await self._on_expired(ref)
        except Exception as e:
            # The row is already gone; leftovers are reclaimed by the sweep.
            log_exception(e, f"ObjectStore: expiry cleanup for id={ref.id}")
