# microtools/services/bringlist_service.py
# Potluck lists: need-lines with bounded claims, plus free-form custom items.

from __future__ import annotations

from typing import Any, Iterable

from microtools.middleware.error_handler import CapacityExceededError, ForbiddenError, ValidationError
from microtools.observability.metrics import CLAIMS_REJECTED
from microtools.repositories.object_store import StoredObject
from microtools.schemas.payloads import BringListData, Claim, CustomItem, NeedLine, ObjectType, to_payload
from microtools.services.base import ToolService, check_index, require_text
from microtools.utils.tokens import generate_token, tokens_match


def _positive(amount: int | None, message: str) -> int:
    value = 1 if amount is None else amount
    if value < 1:
        raise ValidationError(message)
    return value


def public_view(bringlist: BringListData) -> dict[str, Any]:
    """List state without claim or custom-item tokens."""
    return {
        "title": bringlist.title,
        "needed": [
            {
                "item": line.item,
                "amount_needed": line.amount_needed,
                "claimed": line.claimed,
                "remaining": line.remaining,
                "claims": [{"name": c.name, "amount": c.amount} for c in line.claims],
            }
            for line in bringlist.needed
        ],
        "custom": [{"name": c.name, "item": c.item, "amount": c.amount} for c in bringlist.custom],
    }


class BringListService(ToolService[BringListData]):
    object_type = ObjectType.BRINGLIST
    not_found_message = "List not found."

    async def create(self, title: str, needed: Iterable[tuple[str, int | None]]) -> StoredObject:
        title = require_text(title, "Please enter a title.")
        lines = [
            NeedLine(item=item.strip(), amount_needed=_positive(amount, "Amounts must be at least 1."), claims=[])
            for item, amount in needed
            if item and item.strip()
        ]
        if not lines:
            raise ValidationError("Please add at least one item.")
        bringlist = BringListData(title=title, needed=lines, custom=[])
        return await self._store.create(self.object_type.value, to_payload(bringlist))

    async def get(self, list_id: str) -> tuple[StoredObject, BringListData]:
        return await self.load(list_id)

    async def claim(self, list_id: str, index: int, name: str, amount: int | None = 1) -> tuple[str, BringListData]:
        """Claim ``amount`` of need-line ``index``; returns the claim's token.

        The remaining capacity is recomputed from the row as it is at write
        time, so concurrent claims can never over-fill a line.
        """
        name = require_text(name, "Please enter your name and amount.")
        amount = _positive(amount, "Please enter your name and amount.")

        def add_claim(bringlist: BringListData) -> str:
            line = bringlist.needed[check_index(index, len(bringlist.needed))]
            if amount > line.remaining:
                CLAIMS_REJECTED.inc()
                raise CapacityExceededError(line.remaining)
            token = generate_token()
            line.claims.append(Claim(name=name, amount=amount, token=token))
            return token

        bringlist, token = await self.modify(list_id, add_claim)
        return token, bringlist

    async def unclaim(self, list_id: str, index: int, claim_index: int, token: str | None) -> BringListData:
        def drop_claim(bringlist: BringListData) -> None:
            line = bringlist.needed[check_index(index, len(bringlist.needed))]
            check_index(claim_index, len(line.claims), "Invalid claim.")
            if not tokens_match(token, line.claims[claim_index].token):
                raise ForbiddenError("Cannot delete this claim.")
            del line.claims[claim_index]

        bringlist, _ = await self.modify(list_id, drop_claim)
        return bringlist

    async def add_custom(self, list_id: str, name: str, item: str, amount: int | None = 1) -> tuple[str, BringListData]:
        name = require_text(name, "Please fill all fields.")
        item = require_text(item, "Please fill all fields.")
        amount = _positive(amount, "Please fill all fields.")

        def append(bringlist: BringListData) -> str:
            token = generate_token()
            bringlist.custom.append(CustomItem(name=name, item=item, amount=amount, token=token))
            return token

        bringlist, token = await self.modify(list_id, append)
        return token, bringlist

    async def remove_custom(self, list_id: str, index: int, token: str | None) -> BringListData:
        def drop(bringlist: BringListData) -> None:
            check_index(index, len(bringlist.custom))
            if not tokens_match(token, bringlist.custom[index].token):
                raise ForbiddenError("Cannot delete this item.")
            del bringlist.custom[index]

        bringlist, _ = await self.modify(list_id, drop)
        return bringlist
