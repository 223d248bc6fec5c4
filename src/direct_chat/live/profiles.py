from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from direct_chat.application.ports.change_feed import ChangeFeed
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.uow import UnitOfWork, UnitOfWorkFactory
from direct_chat.config import settings
from direct_chat.domain.entities.profile import Profile
from direct_chat.domain.value_objects.enums import Collection
from direct_chat.live.base import LiveView
from direct_chat.services import profile_service


class ProfilesView(LiveView[list[Profile]]):
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        change_feed: ChangeFeed,
        *,
        clock: Clock | None = None,
        stale_after: float = settings.PRESENCE_STALE_SECONDS,
    ) -> None:
        super().__init__(uow_factory, change_feed)
        self._clock = clock or SystemClock()
        self._stale_after = timedelta(seconds=stale_after)
        self._profiles: dict[UUID, Profile] = {}

    def __repr__(self) -> str:
        return "ProfilesView()"

    @property
    def profiles(self) -> list[Profile]:
        return list(self._profiles.values())

    def get(self, user_id: UUID) -> Profile | None:
        return self._profiles.get(user_id)

    def online(self) -> list[Profile]:
        now = self._clock.now()
        return [p for p in self._profiles.values() if p.is_effectively_online(now, self._stale_after)]

    async def _subscribe(self) -> None:
        await self._watch(Collection.PROFILES)

    async def _fetch(self, uow: UnitOfWork) -> list[Profile]:
        return await profile_service.list_profiles(uow)

    def _apply(self, state: list[Profile]) -> None:
        self._profiles = {p.id: p for p in state}
