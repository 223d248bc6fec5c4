from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from direct_chat.domain.entities.typing_indicator import TypingIndicator


class TypingIndicatorReader(Protocol):
    async def list_for_conversation(self, conversation_id: UUID) -> list[TypingIndicator]: ...


class TypingIndicatorWriter(Protocol):
    async def upsert(
        self,
        conversation_id: UUID,
        user_id: UUID,
        is_typing: bool,
        ts: datetime,
    ) -> TypingIndicator: ...
