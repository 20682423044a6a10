# microtools/routers/secrets.py
# FastAPI router for one-time secrets

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from microtools.bootstrap import Components
from microtools.routers.deps import get_components
from microtools.schemas.common import CreatedResponse, ExpiringRequest
from microtools.services.secrets_service import SecretsService


router = APIRouter(tags=["Secrets"])


class SecretCreateRequest(ExpiringRequest):
    ciphertext: str


class SecretRevealResponse(BaseModel):
    ciphertext: str


def get_service(components: Components = Depends(get_components)) -> SecretsService:
    return SecretsService(components.store)


@router.post("/secrets", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_secret(payload: SecretCreateRequest, service: SecretsService = Depends(get_service)) -> CreatedResponse:
    obj = await service.create(payload.ciphertext, ttl=payload.ttl())
    return CreatedResponse(id=obj.id, expires_at=obj.expires_at)


# POST rather than GET: link previewers must not burn the secret.
@router.post("/secrets/{secret_id}/reveal", response_model=SecretRevealResponse)
async def reveal_secret(secret_id: str, service: SecretsService = Depends(get_service)) -> SecretRevealResponse:
    return SecretRevealResponse(ciphertext=await service.reveal(secret_id))
