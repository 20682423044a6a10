from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field

# Ten years.
MAX_EXPIRES_IN_HOURS = 24 * 365 * 10


class CreatedResponse(BaseModel):
    id: str
    expires_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    """A freshly minted capability token plus the state it applies to."""
    token: str
    state: dict


class ExpiringRequest(BaseModel):
    expires_in_hours: Optional[int] = Field(default=None, gt=0, le=MAX_EXPIRES_IN_HOURS)

    def ttl(self) -> Optional[timedelta]:
        return timedelta(hours=self.expires_in_hours) if self.expires_in_hours else None
