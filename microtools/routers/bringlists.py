# microtools/routers/bringlists.py
# FastAPI router for potluck ("bring") lists

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from microtools.bootstrap import Components
from microtools.routers.deps import get_components
from microtools.schemas.common import CreatedResponse, TokenResponse
from microtools.services.bringlist_service import BringListService, public_view


router = APIRouter(tags=["Bring lists"])


class NeedLineRequest(BaseModel):
    item: str
    amount_needed: Optional[int] = None


class BringListCreateRequest(BaseModel):
    title: str
    needed: List[NeedLineRequest]


class ClaimRequest(BaseModel):
    name: str
    amount: int = 1


class CustomItemRequest(BaseModel):
    name: str
    item: str
    amount: int = 1


def get_service(components: Components = Depends(get_components)) -> BringListService:
    return BringListService(components.store)


@router.post("/bring", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_list(payload: BringListCreateRequest, service: BringListService = Depends(get_service)) -> CreatedResponse:
    obj = await service.create(payload.title, [(n.item, n.amount_needed) for n in payload.needed])
    return CreatedResponse(id=obj.id, expires_at=obj.expires_at)


@router.get("/bring/{list_id}")
async def get_list(list_id: str, service: BringListService = Depends(get_service)) -> Dict[str, Any]:
    _, bringlist = await service.get(list_id)
    return {"id": list_id, **public_view(bringlist)}


@router.post("/bring/{list_id}/claims/{index}", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def claim_item(
    list_id: str,
    index: int,
    payload: ClaimRequest,
    service: BringListService = Depends(get_service),
) -> TokenResponse:
    token, bringlist = await service.claim(list_id, index, payload.name, payload.amount)
    return TokenResponse(token=token, state=public_view(bringlist))


@router.delete("/bring/{list_id}/claims/{index}/{claim_index}")
async def unclaim_item(
    list_id: str,
    index: int,
    claim_index: int,
    token: Optional[str] = Query(None),
    service: BringListService = Depends(get_service),
) -> Dict[str, Any]:
    bringlist = await service.unclaim(list_id, index, claim_index, token)
    return public_view(bringlist)


@router.post("/bring/{list_id}/custom", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def add_custom_item(
    list_id: str,
    payload: CustomItemRequest,
    service: BringListService = Depends(get_service),
) -> TokenResponse:
    token, bringlist = await service.add_custom(list_id, payload.name, payload.item, payload.amount)
    return TokenResponse(token=token, state=public_view(bringlist))


@router.delete("/bring/{list_id}/custom/{index}")
async def remove_custom_item(
    list_id: str,
    index: int,
    token: Optional[str] = Query(None),
    service: BringListService = Depends(get_service),
) -> Dict[str, Any]:
    bringlist = await service.remove_custom(list_id, index, token)
    return public_view(bringlist)
