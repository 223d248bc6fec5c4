from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from direct_chat.domain.events.change import ChangeEvent, parse_topic


class OutboxWriter(Protocol):
    async def add(self, event: ChangeEvent) -> None:
        """Stage a change notification in the current transaction."""
        ...

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]: ...

    async def mark_sent(self, ids: list[int]) -> None: ...

    async def mark_failed(
        self, record_id: int, next_retry_at: datetime, error: str | None = None,
    ) -> None: ...

    async def mark_dead(self, record_id: int, error: str | None = None) -> None:
        """Give up on a record after OUTBOX_MAX_ATTEMPTS."""
        ...


class OutboxRecord:
    """Lightweight read-model for the outbox worker."""

    __slots__ = ("id", "topic", "payload", "attempts")

    def __init__(
        self,
        id: int,
        topic: str,
        payload: dict[str, Any],
        attempts: int,
    ) -> None:
        self.id = id
        self.topic = topic
        self.payload = payload
        self.attempts = attempts

    def to_event(self) -> ChangeEvent:
        collection, event_type = parse_topic(self.topic)
        return ChangeEvent(collection=collection, event_type=event_type, new_row=self.payload)
