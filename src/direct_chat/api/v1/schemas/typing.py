from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class SetTypingRequest(BaseModel):
    is_typing: bool


class TypingIndicatorResponse(BaseModel):
    conversation_id: UUID
    user_id: UUID
    is_typing: bool
    updated_at: datetime

    model_config = {"from_attributes": True}
