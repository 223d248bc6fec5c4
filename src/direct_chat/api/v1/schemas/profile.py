from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ProfileResponse(BaseModel):
    id: UUID
    username: str
    avatar_url: str | None
    email: str | None
    is_online: bool
    last_seen: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SetPresenceRequest(BaseModel):
    is_online: bool
