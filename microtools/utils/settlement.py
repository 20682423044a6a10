# microtools/utils/settlement.py
# Expense settlement: net balance per participant, derived on every view.
# Pure functions with no side effects.
#
# Rounding policy: amounts are converted to Decimal and kept at full context
# precision; rounding to the minor unit happens only in format_amount and
# suggest_transfers.

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable, Mapping, NamedTuple, Union

Number = Union[int, float, Decimal, str]

CENT = Decimal("0.01")
ZERO_SUM_TOLERANCE = Decimal("0.01")


class Transfer(NamedTuple):
    debtor: str
    creditor: str
    amount: Decimal


def to_decimal(value: Number) -> Decimal:
    # str() first so 0.1 stays 0.1 instead of its binary expansion
    return value if isinstance(value, Decimal) else Decimal(str(value))


def compute_balances(participants: Iterable[str], entries: Iterable[Mapping]) -> dict[str, Decimal]:
    """
    Net balance per participant.

    For each entry, every name in split_between owes amount / len(split_between)
    to paid_by. Balance = total paid - total owed. Positive means the
    participant is owed money.
    """
    balances: dict[str, Decimal] = {name: Decimal(0) for name in participants}
    for entry in entries:
        split = list(entry["split_between"])
        if not split:
            continue
        amount = to_decimal(entry["amount"])
        share = amount / len(split)
        payer = entry["paid_by"]
        balances[payer] = balances.get(payer, Decimal(0)) + amount
        for name in split:
            balances[name] = balances.get(name, Decimal(0)) - share
    return balances


def is_balanced(balances: Mapping[str, Decimal], tolerance: Decimal = ZERO_SUM_TOLERANCE) -> bool:
    """Zero-sum check: all net balances must cancel out."""
    return abs(sum(balances.values(), Decimal(0))) <= tolerance


def round_amount(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def format_amount(value: Number) -> str:
    """Display form, rounded to the minor unit."""
    return f"{round_amount(to_decimal(value)):.2f}"


def suggest_transfers(balances: Mapping[str, Decimal]) -> list[Transfer]:
    """Greedy list of payments that settles everyone (largest debts first)."""
    creditors = sorted(
        ((name, round_amount(b)) for name, b in balances.items() if round_amount(b) > 0),
        key=lambda item: (-item[1], item[0]),
    )
    debtors = sorted(
        ((name, -round_amount(b)) for name, b in balances.items() if round_amount(b) < 0),
        key=lambda item: (-item[1], item[0]),
    )

    transfers: list[Transfer] = []
    ci = di = 0
    credit_left = creditors[0][1] if creditors else Decimal(0)
    debt_left = debtors[0][1] if debtors else Decimal(0)
    while ci < len(creditors) and di < len(debtors):
        amount = min(credit_left, debt_left)
        if amount > 0:
            transfers.append(Transfer(debtors[di][0], creditors[ci][0], amount))
        credit_left -= amount
        debt_left -= amount
        if credit_left <= 0:
            ci += 1
            credit_left = creditors[ci][1] if ci < len(creditors) else Decimal(0)
        if debt_left <= 0:
            di += 1
            debt_left = debtors[di][1] if di < len(debtors) else Decimal(0)
    return transfers
