from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Profile:
    id: UUID
    username: str
    avatar_url: str | None
    email: str | None
    is_online: bool
    last_seen: datetime
    created_at: datetime
    updated_at: datetime

    def is_effectively_online(self, now: datetime, stale_after: timedelta) -> bool:
        """Online flag alone can be stuck after a crash; require a recent heartbeat too."""
        return self.is_online and now - self.last_seen <= stale_after
