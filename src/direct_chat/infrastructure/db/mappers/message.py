from __future__ import annotations

from direct_chat.domain.entities.message import Message
from direct_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        sender_id=model.sender_id,
        content=model.content,
        read_at=model.read_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        conversation_id=entity.conversation_id,
        sender_id=entity.sender_id,
        content=entity.content,
        read_at=entity.read_at,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
