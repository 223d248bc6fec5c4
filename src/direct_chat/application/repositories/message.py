from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from direct_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        """Whole log, ascending by created_at then insertion order."""
        ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def mark_read(
        self, message_id: UUID, reader_id: UUID, ts: datetime
    ) -> Message | None:
        """Set read_at if unset and reader is not the sender. Return the updated row or None."""
        ...
