from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol
from uuid import UUID

from direct_chat.domain.entities.profile import Profile


class ProfileReader(Protocol):
    async def get_by_id(self, user_id: UUID) -> Profile | None: ...

    async def get_many(self, user_ids: Iterable[UUID]) -> list[Profile]: ...

    async def get_by_email(self, email: str) -> Profile | None: ...

    async def get_by_username(self, username: str) -> Profile | None: ...

    async def search(self, term: str, *, limit: int = 10) -> list[Profile]:
        """Case-insensitive substring match on username or email, ordered by (username, id)."""
        ...

    async def list_all(self) -> list[Profile]: ...


class ProfileWriter(Protocol):
    async def upsert_identity(
        self,
        user_id: UUID,
        username: str,
        email: str | None,
        avatar_url: str | None,
        ts: datetime,
    ) -> Profile:
        """Insert or update identity fields; presence fields are left untouched."""
        ...

    async def set_presence(
        self, user_id: UUID, is_online: bool, last_seen: datetime
    ) -> Profile | None: ...
