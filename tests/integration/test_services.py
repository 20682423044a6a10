# tests/integration/test_services.py
# Tool services over a real ObjectStore: notes, secrets, polls, expenses, bring lists.

import asyncio
from datetime import timedelta

import pytest

from microtools.middleware.error_handler import (
    CapacityExceededError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from microtools.services.bringlist_service import BringListService, public_view as bring_view
from microtools.services.expenses_service import ExpensesService
from microtools.services.notes_service import NotesService
from microtools.services.polls_service import PollsService, tally
from microtools.services.secrets_service import SecretsService


# --- notes ---

@pytest.mark.asyncio
async def test_note_lifecycle(store):
    service = NotesService(store)
    obj = await service.create("  some text  ", title="Title")

    _, note = await service.get(obj.id)
    assert note.text == "some text"
    assert note.title == "Title"
    assert await service.raw_text(obj.id) == "some text"

    await service.delete(obj.id)
    with pytest.raises(NotFoundError):
        await service.get(obj.id)
    with pytest.raises(NotFoundError):
        await service.delete(obj.id)


@pytest.mark.asyncio
async def test_note_requires_text(store):
    with pytest.raises(ValidationError):
        await NotesService(store).create("   ")


@pytest.mark.asyncio
async def test_note_with_ttl_expires(store, clock):
    service = NotesService(store)
    obj = await service.create("brief", ttl=timedelta(hours=1))
    clock.advance(hours=1, seconds=1)

    with pytest.raises(NotFoundError):
        await service.get(obj.id)


@pytest.mark.asyncio
async def test_foreign_type_is_not_found(store):
    note = await NotesService(store).create("not a poll")

    with pytest.raises(NotFoundError):
        await PollsService(store).get(note.id)


# --- secrets ---

@pytest.mark.asyncio
async def test_secret_reveals_once(store):
    service = SecretsService(store)
    obj = await service.create("ciphertext-blob")

    assert await service.reveal(obj.id) == "ciphertext-blob"
    with pytest.raises(NotFoundError) as exc:
        await service.reveal(obj.id)
    assert exc.value.message == "Secret not found or already viewed."


@pytest.mark.asyncio
async def test_concurrent_reveals_succeed_exactly_once(store):
    service = SecretsService(store)
    obj = await service.create("only-once")

    results = await asyncio.gather(*(service.reveal(obj.id) for _ in range(4)), return_exceptions=True)

    assert results.count("only-once") == 1
    assert all(isinstance(r, NotFoundError) for r in results if r != "only-once")


@pytest.mark.asyncio
async def test_reveal_does_not_consume_other_types(store):
    note = await NotesService(store).create("keep me")

    with pytest.raises(NotFoundError):
        await SecretsService(store).reveal(note.id)
    assert await store.get(note.id) is not None


# --- polls ---

@pytest.mark.asyncio
async def test_poll_responses_and_tally(store):
    service = PollsService(store)
    obj = await service.create("Team dinner", [{"date": "2026-05-01", "time": "19:00"}, {"date": "2026-05-02", "time": ""}])

    await service.add_response(obj.id, "Ann", [0, 1, 1])
    poll = await service.add_response(obj.id, "Bob", [1])
    # Duplicate names are separate responses.
    poll = await service.add_response(obj.id, "Bob", [])

    assert [r.name for r in poll.responses] == ["Ann", "Bob", "Bob"]
    assert poll.responses[0].votes == [0, 1]
    result = tally(poll)
    assert result.counts == [1, 2]
    assert result.best == [1]


@pytest.mark.asyncio
async def test_poll_rejects_out_of_range_vote(store):
    service = PollsService(store)
    obj = await service.create("Pick", [{"date": "2026-05-01", "time": "10:00"}])

    with pytest.raises(ValidationError):
        await service.add_response(obj.id, "Ann", [3])
    _, poll = await service.get(obj.id)
    assert poll.responses == []


@pytest.mark.asyncio
async def test_poll_requires_slots(store):
    with pytest.raises(ValidationError):
        await PollsService(store).create("Empty", [])


# --- expenses ---

@pytest.mark.asyncio
async def test_expense_example_settles_to_zero(store):
    service = ExpensesService(store)
    obj, expense = await service.create("Trip", ["A", "B", "C"])
    token_a = expense.participants[0].token

    await service.add_entry(obj.id, token_a, "Dinner", 30, ["A", "B", "C"])
    summary = await service.summary(obj.id)

    assert summary["balances"] == {"A": "20.00", "B": "-10.00", "C": "-10.00"}
    assert {(t["from"], t["to"], t["amount"]) for t in summary["transfers"]} == {
        ("B", "A", "10.00"),
        ("C", "A", "10.00"),
    }
    assert "token" not in str(summary)


@pytest.mark.asyncio
async def test_expense_requires_two_unique_participants(store):
    service = ExpensesService(store)
    with pytest.raises(ValidationError):
        await service.create("Solo", ["A"])
    with pytest.raises(ValidationError):
        await service.create("Twins", ["A", "A"])


@pytest.mark.asyncio
async def test_expense_token_is_scoped_to_its_share(store):
    service = ExpensesService(store)
    x, expense_x = await service.create("X", ["A", "B"])
    y, _ = await service.create("Y", ["C", "D"])
    token_from_x = expense_x.participants[0].token

    with pytest.raises(ForbiddenError):
        await service.add_entry(y.id, token_from_x, "Taxi", 12, ["C"])
    with pytest.raises(ForbiddenError):
        await service.participant_view(y.id, token_from_x)


@pytest.mark.asyncio
async def test_expense_missing_share_is_not_found_before_forbidden(store):
    with pytest.raises(NotFoundError):
        await ExpensesService(store).add_entry("missing", "whatever", "Taxi", 12, ["A"])


@pytest.mark.asyncio
async def test_expense_entry_removal(store):
    service = ExpensesService(store)
    obj, expense = await service.create("Trip", ["A", "B"])
    token_b = expense.participants[1].token

    await service.add_entry(obj.id, token_b, "Fuel", 40, ["A", "B"])
    view = await service.participant_view(obj.id, token_b)
    assert view["current_participant"] == "B"
    assert view["entries"][0]["paid_by"] == "B"

    with pytest.raises(ValidationError):
        await service.remove_entry(obj.id, token_b, 5)
    with pytest.raises(ForbiddenError):
        await service.remove_entry(obj.id, None, 0)

    updated = await service.remove_entry(obj.id, token_b, 0)
    assert updated.entries == []


@pytest.mark.asyncio
async def test_expense_rejects_unknown_split_and_bad_amount(store):
    service = ExpensesService(store)
    obj, expense = await service.create("Trip", ["A", "B"])
    token = expense.participants[0].token

    with pytest.raises(ValidationError):
        await service.add_entry(obj.id, token, "Snacks", 5, ["Z"])
    with pytest.raises(ValidationError):
        await service.add_entry(obj.id, token, "Snacks", 0, ["A"])
    with pytest.raises(ValidationError):
        await service.add_entry(obj.id, token, "Snacks", float("nan"), ["A"])


# --- bring lists ---

@pytest.mark.asyncio
async def test_claims_respect_capacity(store):
    service = BringListService(store)
    obj = await service.create("Picnic", [("Salad", 3), ("Bread", None)])

    token, bringlist = await service.claim(obj.id, 0, "Ann", 2)
    assert token
    assert bringlist.needed[0].remaining == 1
    assert bringlist.needed[1].amount_needed == 1

    with pytest.raises(CapacityExceededError) as exc:
        await service.claim(obj.id, 0, "Bob", 2)
    assert exc.value.remaining == 1
    assert exc.value.details == {"remaining": 1}


@pytest.mark.asyncio
async def test_concurrent_claims_never_exceed_capacity(store):
    service = BringListService(store)
    obj = await service.create("Party", [("Chairs", 5)])

    results = await asyncio.gather(
        *(service.claim(obj.id, 0, f"guest{i}", 1) for i in range(12)),
        return_exceptions=True,
    )

    accepted = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, Exception)]
    assert len(accepted) == 5
    assert all(isinstance(r, CapacityExceededError) for r in rejected)
    _, bringlist = await service.get(obj.id)
    assert bringlist.needed[0].claimed == 5
    assert bringlist.needed[0].remaining == 0


@pytest.mark.asyncio
async def test_unclaim_needs_matching_token(store):
    service = BringListService(store)
    obj = await service.create("Picnic", [("Salad", 2)])
    token, _ = await service.claim(obj.id, 0, "Ann", 1)

    with pytest.raises(ForbiddenError):
        await service.unclaim(obj.id, 0, 0, "wrong-token")
    with pytest.raises(ForbiddenError):
        await service.unclaim(obj.id, 0, 0, None)
    with pytest.raises(ValidationError):
        await service.unclaim(obj.id, 0, 4, token)

    bringlist = await service.unclaim(obj.id, 0, 0, token)
    assert bringlist.needed[0].claims == []
    assert bringlist.needed[0].remaining == 2


@pytest.mark.asyncio
async def test_custom_items(store):
    service = BringListService(store)
    obj = await service.create("Picnic", [("Salad", 1)])

    token, bringlist = await service.add_custom(obj.id, "Ann", "Cake", 2)
    view = bring_view(bringlist)
    assert view["custom"] == [{"name": "Ann", "item": "Cake", "amount": 2}]

    with pytest.raises(ForbiddenError):
        await service.remove_custom(obj.id, 0, "nope")
    bringlist = await service.remove_custom(obj.id, 0, token)
    assert bringlist.custom == []


@pytest.mark.asyncio
async def test_bring_list_requires_items(store):
    with pytest.raises(ValidationError):
        await BringListService(store).create("Nothing", [("  ", 2)])
    with pytest.raises(ValidationError):
        await BringListService(store).create("Bad", [("Salad", 0)])
