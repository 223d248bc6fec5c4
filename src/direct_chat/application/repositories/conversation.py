from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from direct_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def get_by_pair(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        """Find the conversation for the unordered pair, in either stored order."""
        ...

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        """Ordered by last_message_time desc (nulls last), then updated_at desc."""
        ...


class ConversationWriter(Protocol):
    async def create_if_not_exists(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        """Insert unless the unordered pair already has a row. Return (conversation, created)."""
        ...

    async def set_last_message(
        self, conversation_id: UUID, content: str, ts: datetime
    ) -> Conversation | None: ...
