from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from direct_chat.api.v1.schemas.profile import ProfileResponse


class CreateConversationRequest(BaseModel):
    other_user_id: UUID


class ConversationResponse(BaseModel):
    id: UUID
    user1_id: UUID
    user2_id: UUID
    last_message_content: str | None
    last_message_time: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ConversationSummaryResponse(BaseModel):
    conversation: ConversationResponse
    counterpart: ProfileResponse | None

    model_config = {"from_attributes": True}
