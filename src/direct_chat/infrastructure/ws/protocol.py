"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel

from direct_chat.domain.value_objects.enums import Collection


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # subscribe | unsubscribe | typing | mark_read | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # change | subscribed | unsubscribed | error | pong
    data: dict[str, Any] = {}


class TopicRequest(BaseModel):
    collection: Collection
    conversation_id: UUID | None = None


class TypingRequest(BaseModel):
    conversation_id: UUID
    is_typing: bool


class MarkReadRequest(BaseModel):
    message_id: UUID
