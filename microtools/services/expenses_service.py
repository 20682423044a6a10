# microtools/services/expenses_service.py

from __future__ import annotations

import math
from typing import Any, Iterable

from microtools.middleware.error_handler import ForbiddenError, ValidationError
from microtools.repositories.object_store import StoredObject
from microtools.schemas.payloads import ExpenseData, ExpenseEntry, ObjectType, Participant, to_payload
from microtools.services.base import ToolService, check_index, require_text
from microtools.utils.settlement import compute_balances, format_amount, suggest_transfers
from microtools.utils.tokens import generate_token, tokens_match


def authorize(expense: ExpenseData, token: str | None) -> Participant:
    """Return the participant holding ``token``; ForbiddenError otherwise."""
    for participant in expense.participants:
        if tokens_match(token, participant.token):
            return participant
    raise ForbiddenError("Invalid participant token.")


def public_view(expense: ExpenseData) -> dict[str, Any]:
    """Everything a summary link may show: no participant tokens."""
    names = [p.name for p in expense.participants]
    entries = [e.model_dump() for e in expense.entries]
    balances = compute_balances(names, entries)
    return {
        "title": expense.title,
        "currency": expense.currency,
        "participants": names,
        "entries": entries,
        "balances": {name: format_amount(value) for name, value in balances.items()},
        "transfers": [
            {"from": t.debtor, "to": t.creditor, "amount": format_amount(t.amount)}
            for t in suggest_transfers(balances)
        ],
    }


class ExpensesService(ToolService[ExpenseData]):
    """Shared expense ledgers; only participant-token holders may edit entries."""

    object_type = ObjectType.EXPENSE
    not_found_message = "Expense share not found."

    async def create(
        self,
        title: str,
        participant_names: Iterable[str],
        currency: str | None = None,
    ) -> tuple[StoredObject, ExpenseData]:
        title = require_text(title, "Please enter a title.")
        names = [n.strip() for n in participant_names if n and n.strip()]
        if len(names) < 2:
            raise ValidationError("Please add at least 2 participants.")
        if len(set(names)) != len(names):
            raise ValidationError("Participant names must be unique.")

        expense = ExpenseData(
            title=title,
            currency=(currency or "").strip() or "€",
            participants=[Participant(name=n, token=generate_token()) for n in names],
            entries=[],
        )
        obj = await self._store.create(self.object_type.value, to_payload(expense))
        return obj, expense

    async def summary(self, expense_id: str) -> dict[str, Any]:
        _, expense = await self.load(expense_id)
        return public_view(expense)

    async def participant_view(self, expense_id: str, token: str | None) -> dict[str, Any]:
        _, expense = await self.load(expense_id)
        participant = authorize(expense, token)
        view = public_view(expense)
        view["current_participant"] = participant.name
        return view

    async def add_entry(
        self,
        expense_id: str,
        token: str | None,
        description: str,
        amount: float,
        split_between: Iterable[str],
    ) -> ExpenseData:
        description = require_text(description, "Please enter a description.")
        if amount is None or not math.isfinite(amount) or amount <= 0:
            raise ValidationError("Please enter a valid amount.")
        split = list(dict.fromkeys(s.strip() for s in split_between if s and s.strip()))
        if not split:
            raise ValidationError("Please select at least one person to split with.")

        def append(expense: ExpenseData) -> None:
            payer = authorize(expense, token)
            known = {p.name for p in expense.participants}
            if any(name not in known for name in split):
                raise ValidationError("Split references an unknown participant.")
            expense.entries.append(
                ExpenseEntry(
                    description=description,
                    amount=float(amount),
                    paid_by=payer.name,
                    split_between=split,
                )
            )

        expense, _ = await self.modify(expense_id, append)
        return expense

    async def remove_entry(self, expense_id: str, token: str | None, index: int) -> ExpenseData:
        def drop(expense: ExpenseData) -> None:
            authorize(expense, token)
            check_index(index, len(expense.entries), "Invalid entry.")
            del expense.entries[index]

        expense, _ = await self.modify(expense_id, drop)
        return expense
