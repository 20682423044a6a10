# tests/integration/test_object_store.py
# ObjectStore against SQLite: lifecycle, lazy expiry, serialised writes, one-time take.

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select

from microtools.middleware.error_handler import ConflictError, ValidationError
from microtools.models.objects_table import objects
from microtools.repositories.object_store import ObjectRef


async def _row_exists(session_factory, object_id: str) -> bool:
    async with session_factory() as session:
        result = await session.execute(select(objects.c.id).where(objects.c.id == object_id))
        return result.first() is not None


@pytest.mark.asyncio
async def test_create_then_get_returns_same_payload(store, clock):
    created = await store.create("note", {"text": "hello", "tags": [1, 2]})

    fetched = await store.get(created.id)

    assert fetched is not None
    assert fetched.type == "note"
    assert fetched.data == {"text": "hello", "tags": [1, 2]}
    assert fetched.created_at == clock()
    assert fetched.expires_at is None


@pytest.mark.asyncio
async def test_ids_are_distinct(store):
    ids = {(await store.create("note", {"n": i})).id for i in range(20)}
    assert len(ids) == 20


@pytest.mark.asyncio
async def test_create_rejects_non_positive_ttl(store):
    with pytest.raises(ValidationError):
        await store.create("note", {}, ttl=timedelta(0))


@pytest.mark.asyncio
async def test_create_rejects_ttl_past_the_calendar(store):
    with pytest.raises(ValidationError):
        await store.create("note", {}, ttl=timedelta(days=999_999_999))


@pytest.mark.asyncio
async def test_unknown_id_is_absent(store):
    assert await store.get("does-not-exist") is None


@pytest.mark.asyncio
async def test_object_without_expiry_survives_far_future(store, clock):
    created = await store.create("note", {"text": "forever"})
    clock.advance(days=365 * 20)

    assert (await store.get(created.id)) is not None
    assert await store.purge_expired() == []


@pytest.mark.asyncio
async def test_expired_get_is_absent_and_deletes_row(store, clock, session_factory):
    seen = []

    async def on_expired(ref):
        seen.append(ref)

    store.set_expiry_callback(on_expired)
    created = await store.create("poll", {"title": "x"}, ttl=timedelta(hours=1))

    clock.advance(hours=1)
    # Exactly at expires_at the object is still live.
    assert await store.get(created.id) is not None

    clock.advance(seconds=1)
    assert await store.get(created.id) is None
    assert not await _row_exists(session_factory, created.id)
    assert seen == [ObjectRef(created.id, "poll")]

    # A second read neither resurrects it nor re-runs the cascade.
    assert await store.get(created.id) is None
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_expiry_callback_failure_does_not_break_get(store, clock):
    async def explode(ref):
        raise RuntimeError("blob backend down")

    store.set_expiry_callback(explode)
    created = await store.create("fileshare", {"files": []}, ttl=timedelta(minutes=5))
    clock.advance(minutes=6)

    assert await store.get(created.id) is None


@pytest.mark.asyncio
async def test_create_with_id_conflict_leaves_existing_row(store):
    await store.create_with_id("fixed-id", "note", {"text": "first"})

    with pytest.raises(ConflictError):
        await store.create_with_id("fixed-id", "note", {"text": "second"})

    fetched = await store.get("fixed-id")
    assert fetched.data == {"text": "first"}


@pytest.mark.asyncio
async def test_create_with_id_requires_aware_expiry(store, clock):
    with pytest.raises(ValueError):
        await store.create_with_id("naive", "note", {}, expires_at=clock().replace(tzinfo=None))


@pytest.mark.asyncio
async def test_update_replaces_data_but_keeps_timestamps(store, clock):
    created = await store.create("note", {"v": 1}, ttl=timedelta(days=1))
    clock.advance(hours=2)

    updated = await store.update(created.id, {"v": 2})
    fetched = await store.get(created.id)

    assert updated.data == {"v": 2}
    assert fetched.data == {"v": 2}
    assert fetched.created_at == created.created_at
    assert fetched.expires_at == created.expires_at


@pytest.mark.asyncio
async def test_update_of_absent_or_expired_object_returns_none(store, clock):
    assert await store.update("missing", {"v": 1}) is None

    created = await store.create("note", {"v": 1}, ttl=timedelta(minutes=1))
    clock.advance(minutes=2)
    assert await store.update(created.id, {"v": 2}) is None
    assert await store.get(created.id) is None


@pytest.mark.asyncio
async def test_mutate_failure_writes_nothing(store):
    created = await store.create("list", {"items": [1]})

    def boom(data):
        data["items"].append(2)
        raise ValidationError("nope")

    with pytest.raises(ValidationError):
        await store.mutate(created.id, boom)

    assert (await store.get(created.id)).data == {"items": [1]}


@pytest.mark.asyncio
async def test_concurrent_mutations_are_not_lost(store):
    created = await store.create("counter", {"n": 0})

    def increment(data):
        data["n"] += 1
        return data

    await asyncio.gather(*(store.mutate(created.id, increment) for _ in range(25)))

    assert (await store.get(created.id)).data == {"n": 25}


@pytest.mark.asyncio
async def test_take_returns_row_exactly_once(store):
    created = await store.create("secret", {"ciphertext": "abc"})

    results = await asyncio.gather(*(store.take(created.id) for _ in range(5)))

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert winners[0].data == {"ciphertext": "abc"}
    assert await store.get(created.id) is None


@pytest.mark.asyncio
async def test_take_of_expired_row_is_absent(store, clock):
    created = await store.create("secret", {"ciphertext": "abc"}, ttl=timedelta(hours=1))
    clock.advance(hours=2)

    assert await store.take(created.id) is None


@pytest.mark.asyncio
async def test_remove_is_idempotent(store):
    created = await store.create("note", {})

    assert await store.remove(created.id) is True
    assert await store.remove(created.id) is False
    assert await store.remove("never-existed") is False
    assert await store.get(created.id) is None


@pytest.mark.asyncio
async def test_purge_expired_reports_and_is_idempotent(store, clock):
    short = await store.create("fileshare", {"files": []}, ttl=timedelta(hours=1))
    longer = await store.create("note", {}, ttl=timedelta(days=2))
    forever = await store.create("note", {})

    clock.advance(hours=3)
    purged = await store.purge_expired()

    assert purged == [ObjectRef(short.id, "fileshare")]
    assert await store.purge_expired() == []
    assert await store.get(longer.id) is not None
    assert await store.get(forever.id) is not None


@pytest.mark.asyncio
async def test_ping_succeeds_against_live_database(store):
    await store.ping()
