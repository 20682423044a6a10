# microtools/services/polls_service.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import pydantic

from microtools.middleware.error_handler import ValidationError
from microtools.repositories.object_store import StoredObject
from microtools.schemas.payloads import ObjectType, PollData, PollResponse, PollSlot, to_payload
from microtools.services.base import ToolService, require_text


@dataclass(frozen=True)
class PollTally:
    counts: list[int]  # votes per slot, by slot index
    best: list[int]  # indices of the slots with the most votes (empty if no votes)


def tally(poll: PollData) -> PollTally:
    counts = [0] * len(poll.slots)
    for response in poll.responses:
        for idx in response.votes:
            if 0 <= idx < len(counts):
                counts[idx] += 1
    top = max(counts, default=0)
    best = [i for i, c in enumerate(counts) if c == top] if top > 0 else []
    return PollTally(counts=counts, best=best)


class PollsService(ToolService[PollData]):
    """Date polls with append-only responses."""

    object_type = ObjectType.POLL
    not_found_message = "Poll not found."

    async def create(self, title: str, slots: Iterable[PollSlot | dict]) -> StoredObject:
        title = require_text(title, "Please enter a title.")
        try:
            parsed = [PollSlot.model_validate(s) for s in slots]
        except pydantic.ValidationError as e:
            raise ValidationError("Each slot needs a date and a time.") from e
        if not parsed or any(not s.date.strip() for s in parsed):
            raise ValidationError("Please add at least one date/time.")
        poll = PollData(title=title, slots=parsed, responses=[])
        return await self._store.create(self.object_type.value, to_payload(poll))

    async def get(self, poll_id: str) -> tuple[StoredObject, PollData]:
        return await self.load(poll_id)

    async def add_response(self, poll_id: str, name: str, votes: Iterable[int]) -> PollData:
        # Duplicate participant names are allowed.
        name = require_text(name, "Please enter your name.")
        chosen = sorted(set(votes))

        def append(poll: PollData) -> None:
            if any(v < 0 or v >= len(poll.slots) for v in chosen):
                raise ValidationError("Vote references an unknown slot.")
            poll.responses.append(PollResponse(name=name, votes=chosen))

        poll, _ = await self.modify(poll_id, append)
        return poll
