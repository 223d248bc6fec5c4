from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID


@dataclass(frozen=True, slots=True)
class TypingIndicator:
    conversation_id: UUID
    user_id: UUID
    is_typing: bool
    updated_at: datetime

    def is_active(self, now: datetime, ttl: timedelta) -> bool:
        """A typing flag decays to False once it is older than ``ttl``."""
        return self.is_typing and now - self.updated_at < ttl
