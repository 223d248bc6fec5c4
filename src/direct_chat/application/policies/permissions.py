from __future__ import annotations

from uuid import UUID

from direct_chat.application.exceptions import (
    InvalidArgumentError,
    NotAMemberError,
    NotFoundError,
)
from direct_chat.domain.entities.conversation import Conversation


def require_id(value: object, name: str) -> UUID:
    """Coerce a caller-supplied id, rejecting empty or malformed values."""
    if isinstance(value, UUID):
        return value
    if not value:
        raise InvalidArgumentError(f"{name} is required")
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise InvalidArgumentError(f"{name} is not a valid id") from exc


def assert_participant(conversation: Conversation | None, user_id: UUID) -> Conversation:
    """Raise if conversation doesn't exist or user is not one of its two participants."""
    if conversation is None:
        raise NotFoundError("Conversation not found")
    if not conversation.has_participant(user_id):
        raise NotAMemberError("Not a participant of this conversation")
    return conversation
