from __future__ import annotations

from direct_chat.domain.entities.typing_indicator import TypingIndicator
from direct_chat.infrastructure.db.models.typing_indicator import TypingIndicatorModel


def model_to_entity(model: TypingIndicatorModel) -> TypingIndicator:
    return TypingIndicator(
        conversation_id=model.conversation_id,
        user_id=model.user_id,
        is_typing=model.is_typing,
        updated_at=model.updated_at,
    )
