from __future__ import annotations

from direct_chat.domain.entities.conversation import Conversation, canonical_pair
from direct_chat.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        user1_id=model.user1_id,
        user2_id=model.user2_id,
        last_message_content=model.last_message_content,
        last_message_time=model.last_message_time,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_values(entity: Conversation) -> dict:
    pair_low, pair_high = canonical_pair(entity.user1_id, entity.user2_id)
    return {
        "id": entity.id,
        "user1_id": entity.user1_id,
        "user2_id": entity.user2_id,
        "pair_low": pair_low,
        "pair_high": pair_high,
        "last_message_content": entity.last_message_content,
        "last_message_time": entity.last_message_time,
        "created_at": entity.created_at,
        "updated_at": entity.updated_at,
    }
