from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


def canonical_pair(user_a: UUID, user_b: UUID) -> tuple[UUID, UUID]:
    """Order-independent key for the unordered participant pair."""
    return (user_a, user_b) if str(user_a) <= str(user_b) else (user_b, user_a)


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    user1_id: UUID
    user2_id: UUID
    last_message_content: str | None
    last_message_time: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def participant_ids(self) -> tuple[UUID, UUID]:
        return self.user1_id, self.user2_id

    @property
    def pair(self) -> tuple[UUID, UUID]:
        return canonical_pair(self.user1_id, self.user2_id)

    def has_participant(self, user_id: UUID) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def counterpart_of(self, user_id: UUID) -> UUID:
        return self.user2_id if self.user1_id == user_id else self.user1_id
