from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ObjectType(str, Enum):
    """Tag stored alongside every payload; names the owning tool."""
    NOTE = "note"
    SECRET = "secret"
    POLL = "poll"
    EXPENSE = "expense"
    FILESHARE = "fileshare"
    BRINGLIST = "bringlist"


class NoteData(BaseModel):
    text: str
    title: Optional[str] = None


class SecretData(BaseModel):
    # Encrypted in the browser; the key never reaches the server.
    ciphertext: str


class PollSlot(BaseModel):
    date: str
    time: str


class PollResponse(BaseModel):
    name: str
    votes: list[int] = []  # slot indices


class PollData(BaseModel):
    title: str
    slots: list[PollSlot]
    responses: list[PollResponse] = []


class Participant(BaseModel):
    name: str
    token: str


class ExpenseEntry(BaseModel):
    description: str
    amount: float = Field(gt=0)
    paid_by: str
    split_between: list[str]


class ExpenseData(BaseModel):
    title: str
    currency: str = "€"
    participants: list[Participant]
    entries: list[ExpenseEntry] = []


class SharedFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    stored_name: str = Field(alias="storedName")
    size: int


class FileShareData(BaseModel):
    files: list[SharedFile]


class Claim(BaseModel):
    name: str
    amount: int = Field(gt=0)
    token: str


class NeedLine(BaseModel):
    item: str
    amount_needed: int = Field(gt=0)
    claims: list[Claim] = []

    @property
    def claimed(self) -> int:
        return sum(c.amount for c in self.claims)

    @property
    def remaining(self) -> int:
        return self.amount_needed - self.claimed


class CustomItem(BaseModel):
    name: str
    item: str
    amount: int = Field(gt=0)
    token: str


class BringListData(BaseModel):
    title: str
    needed: list[NeedLine]
    custom: list[CustomItem] = []


PAYLOAD_MODELS: dict[ObjectType, type[BaseModel]] = {
    ObjectType.NOTE: NoteData,
    ObjectType.SECRET: SecretData,
    ObjectType.POLL: PollData,
    ObjectType.EXPENSE: ExpenseData,
    ObjectType.FILESHARE: FileShareData,
    ObjectType.BRINGLIST: BringListData,
}


def to_payload(model: BaseModel) -> dict:
    """Serialise a payload model to the JSON stored in ``objects.data``."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
