# microtools/services/notes_service.py

from __future__ import annotations

from datetime import timedelta

from microtools.middleware.error_handler import NotFoundError
from microtools.repositories.object_store import StoredObject
from microtools.schemas.payloads import NoteData, ObjectType, to_payload
from microtools.services.base import ToolService, require_text


class NotesService(ToolService[NoteData]):
    """Plain shared notes; anyone holding the link may read or delete."""

    object_type = ObjectType.NOTE
    not_found_message = "Note not found."

    async def create(self, text: str, title: str | None = None, ttl: timedelta | None = None) -> StoredObject:
        note = NoteData(
            text=require_text(text, "Please enter some text."),
            title=(title or "").strip() or None,
        )
        return await self._store.create(self.object_type.value, to_payload(note), ttl=ttl)

    async def get(self, note_id: str) -> tuple[StoredObject, NoteData]:
        return await self.load(note_id)

    async def raw_text(self, note_id: str) -> str:
        _, note = await self.load(note_id)
        return note.text

    async def delete(self, note_id: str) -> None:
        await self.load(note_id)
        if not await self._store.remove(note_id):
            raise NotFoundError(self.not_found_message)
