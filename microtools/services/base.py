# microtools/services/base.py
# Typed wrapper shared by the tool services: every read goes through ObjectStore.get,
# every payload change through ObjectStore.mutate.

from __future__ import annotations

from typing import Any, Callable, Generic, TypeVar

import pydantic

from microtools.middleware.error_handler import AppError, NotFoundError, ValidationError
from microtools.repositories.object_store import ObjectStore, StoredObject
from microtools.schemas.payloads import PAYLOAD_MODELS, ObjectType, to_payload

M = TypeVar("M", bound=pydantic.BaseModel)


def require_text(value: str | None, message: str) -> str:
    """Strip ``value``; raise ValidationError(message) if nothing is left."""
    text = (value or "").strip()
    if not text:
        raise ValidationError(message)
    return text


def check_index(index: int, length: int, message: str = "Invalid item.") -> int:
    if index < 0 or index >= length:
        raise ValidationError(message)
    return index


class CorruptPayloadError(AppError):
    """Stored data no longer matches its type's schema."""
    def __init__(self, object_type: str):
        super().__init__(
            message=f"Stored {object_type} payload is malformed",
            error_code="CORRUPT_PAYLOAD",
            status_code=500,
        )


class ToolService(Generic[M]):
    """Base for services owning one object type."""

    object_type: ObjectType
    not_found_message = "Not found"

    def __init__(self, store: ObjectStore):
        self._store = store

    @property
    def model(self) -> type[M]:
        return PAYLOAD_MODELS[self.object_type]

    def parse(self, data: Any) -> M:
        try:
            return self.model.model_validate(data)
        except pydantic.ValidationError as e:
            raise CorruptPayloadError(self.object_type.value) from e

    async def load(self, object_id: str) -> tuple[StoredObject, M]:
        """Fetch and parse; absent, expired and foreign-typed ids are all NotFound."""
        obj = await self._store.get(object_id)
        if obj is None or obj.type != self.object_type.value:
            raise NotFoundError(self.not_found_message)
        return obj, self.parse(obj.data)

    async def modify(self, object_id: str, fn: Callable[[M], Any]) -> tuple[M, Any]:
        """Apply ``fn`` to the current payload under the store's per-object serialisation.

        ``fn`` edits the model in place and may return a value, which is
        handed back with the updated model. Raising inside ``fn`` aborts the
        write.
        """
        await self.load(object_id)
        outcome: dict[str, Any] = {}

        def apply(data: Any) -> dict:
            model = self.parse(data)
            outcome["result"] = fn(model)
            outcome["model"] = model
            return to_payload(model)

        updated = await self._store.mutate(object_id, apply)
        if updated is None:
            raise NotFoundError(self.not_found_message)
        return outcome["model"], outcome["result"]
