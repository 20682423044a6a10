# microtools/routers/expenses.py
# FastAPI router for expense shares. Participant tokens travel in the path
# (participant page) or the ``token`` query parameter (mutations).

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from microtools.bootstrap import Components
from microtools.routers.deps import get_components
from microtools.services.expenses_service import ExpensesService, public_view


router = APIRouter(tags=["Expenses"])


class ExpenseCreateRequest(BaseModel):
    title: str
    currency: Optional[str] = None
    participants: List[str]


class ParticipantLink(BaseModel):
    name: str
    token: str


class ExpenseCreateResponse(BaseModel):
    id: str
    participants: List[ParticipantLink]


class EntryCreateRequest(BaseModel):
    description: str
    amount: float
    split_between: List[str]


def get_service(components: Components = Depends(get_components)) -> ExpensesService:
    return ExpensesService(components.store)


@router.post("/expenses", response_model=ExpenseCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    payload: ExpenseCreateRequest,
    service: ExpensesService = Depends(get_service),
) -> ExpenseCreateResponse:
    obj, expense = await service.create(payload.title, payload.participants, payload.currency)
    return ExpenseCreateResponse(
        id=obj.id,
        participants=[ParticipantLink(name=p.name, token=p.token) for p in expense.participants],
    )


@router.get("/expenses/{expense_id}")
async def get_summary(expense_id: str, service: ExpensesService = Depends(get_service)) -> Dict[str, Any]:
    return await service.summary(expense_id)


@router.get("/expenses/{expense_id}/participants/{token}")
async def get_participant_view(
    expense_id: str,
    token: str,
    service: ExpensesService = Depends(get_service),
) -> Dict[str, Any]:
    return await service.participant_view(expense_id, token)


@router.post("/expenses/{expense_id}/entries")
async def add_entry(
    expense_id: str,
    payload: EntryCreateRequest,
    token: Optional[str] = Query(None),
    service: ExpensesService = Depends(get_service),
) -> Dict[str, Any]:
    expense = await service.add_entry(
        expense_id, token, payload.description, payload.amount, payload.split_between
    )
    return public_view(expense)


@router.delete("/expenses/{expense_id}/entries/{index}")
async def remove_entry(
    expense_id: str,
    index: int,
    token: Optional[str] = Query(None),
    service: ExpensesService = Depends(get_service),
) -> Dict[str, Any]:
    expense = await service.remove_entry(expense_id, token, index)
    return public_view(expense)
