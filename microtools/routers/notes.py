# microtools/routers/notes.py
# FastAPI router for shared notes

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import PlainTextResponse

from microtools.bootstrap import Components
from microtools.routers.deps import get_components
from microtools.schemas.common import CreatedResponse, ExpiringRequest
from microtools.services.notes_service import NotesService


router = APIRouter(tags=["Notes"])


class NoteCreateRequest(ExpiringRequest):
    text: str
    title: Optional[str] = None


def get_service(components: Components = Depends(get_components)) -> NotesService:
    return NotesService(components.store)


@router.post("/notes", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_note(payload: NoteCreateRequest, service: NotesService = Depends(get_service)) -> CreatedResponse:
    obj = await service.create(payload.text, payload.title, ttl=payload.ttl())
    return CreatedResponse(id=obj.id, expires_at=obj.expires_at)


@router.get("/notes/{note_id}")
async def get_note(note_id: str, service: NotesService = Depends(get_service)) -> Dict[str, Any]:
    obj, note = await service.get(note_id)
    return {
        "id": obj.id,
        "title": note.title,
        "text": note.text,
        "created_at": obj.created_at,
        "expires_at": obj.expires_at,
    }


@router.get("/notes/{note_id}/raw", response_class=PlainTextResponse)
async def get_note_raw(note_id: str, service: NotesService = Depends(get_service)) -> str:
    return await service.raw_text(note_id)


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: str, service: NotesService = Depends(get_service)) -> Response:
    await service.delete(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
