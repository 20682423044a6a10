# microtools/services/secrets_service.py

from __future__ import annotations

from datetime import timedelta

from microtools.middleware.error_handler import NotFoundError
from microtools.observability.metrics import SECRETS_REVEALED
from microtools.repositories.object_store import StoredObject
from microtools.schemas.payloads import ObjectType, SecretData, to_payload
from microtools.services.base import ToolService, require_text
from microtools.utils.logger import log_info


class SecretsService(ToolService[SecretData]):
    """One-time secrets: stored -> revealed-and-deleted -> absent."""

    object_type = ObjectType.SECRET
    not_found_message = "Secret not found or already viewed."

    async def create(self, ciphertext: str, ttl: timedelta | None = None) -> StoredObject:
        secret = SecretData(ciphertext=require_text(ciphertext, "No ciphertext provided."))
        return await self._store.create(self.object_type.value, to_payload(secret), ttl=ttl)

    async def reveal(self, secret_id: str) -> str:
        """Return the ciphertext exactly once; every later call raises NotFoundError."""
        # Type check first so a foreign id is never consumed by take().
        await self.load(secret_id)
        taken = await self._store.take(secret_id)
        if taken is None:
            raise NotFoundError(self.not_found_message)
        SECRETS_REVEALED.inc()
        log_info(f"SecretsService: revealed and deleted id={secret_id}")
        return self.parse(taken.data).ciphertext
