# microtools/routers/polls.py
# FastAPI router for date polls

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from microtools.bootstrap import Components
from microtools.routers.deps import get_components
from microtools.schemas.common import CreatedResponse
from microtools.schemas.payloads import PollData, PollSlot
from microtools.services.polls_service import PollsService, tally


router = APIRouter(tags=["Polls"])


class PollCreateRequest(BaseModel):
    title: str
    slots: List[PollSlot]


class PollResponseRequest(BaseModel):
    name: str
    votes: List[int] = []


def get_service(components: Components = Depends(get_components)) -> PollsService:
    return PollsService(components.store)


def _view(poll_id: str, poll: PollData) -> Dict[str, Any]:
    result = tally(poll)
    return {
        "id": poll_id,
        **poll.model_dump(),
        "tally": {"counts": result.counts, "best": result.best},
    }


@router.post("/polls", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_poll(payload: PollCreateRequest, service: PollsService = Depends(get_service)) -> CreatedResponse:
    obj = await service.create(payload.title, payload.slots)
    return CreatedResponse(id=obj.id, expires_at=obj.expires_at)


@router.get("/polls/{poll_id}")
async def get_poll(poll_id: str, service: PollsService = Depends(get_service)) -> Dict[str, Any]:
    _, poll = await service.get(poll_id)
    return _view(poll_id, poll)


@router.post("/polls/{poll_id}/responses")
async def add_response(
    poll_id: str,
    payload: PollResponseRequest,
    service: PollsService = Depends(get_service),
) -> Dict[str, Any]:
    poll = await service.add_response(poll_id, payload.name, payload.votes)
    return _view(poll_id, poll)
