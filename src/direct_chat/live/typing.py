"""Typing indicators for one open conversation.

Outgoing: keystrokes open a burst (one ``True`` write), every keystroke
re-arms an idle timer, and the burst closes with one ``False`` write when
the timer fires or a message is sent. Incoming: the change feed payload is
applied directly, keeping only the newest row per user, and a ``True`` row
stops counting once it is older than the TTL.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from direct_chat.application.exceptions import TransientStoreError
from direct_chat.application.ports.change_feed import ChangeFeed, Subscription
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.ports.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from direct_chat.application.uow import UnitOfWorkFactory
from direct_chat.config import settings
from direct_chat.domain.entities.typing_indicator import TypingIndicator
from direct_chat.domain.events.change import ChangeEvent
from direct_chat.domain.value_objects.enums import Collection
from direct_chat.services import typing_service

logger = logging.getLogger(__name__)


def _as_uuid(value: Any) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def _as_datetime(value: Any) -> datetime:
    return value if isinstance(value, datetime) else datetime.fromisoformat(str(value))


def indicator_from_row(row: Mapping[str, Any]) -> TypingIndicator:
    return TypingIndicator(
        conversation_id=_as_uuid(row["conversation_id"]),
        user_id=_as_uuid(row["user_id"]),
        is_typing=bool(row["is_typing"]),
        updated_at=_as_datetime(row["updated_at"]),
    )


class TypingCoordinator:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        change_feed: ChangeFeed,
        conversation_id: UUID,
        viewer_id: UUID,
        *,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
        debounce: float = settings.TYPING_DEBOUNCE_SECONDS,
        ttl: float = settings.TYPING_TTL_SECONDS,
    ) -> None:
        self._uow_factory = uow_factory
        self._feed = change_feed
        self.conversation_id = conversation_id
        self.viewer_id = viewer_id
        self._scheduler = scheduler or AsyncioScheduler()
        self._clock = clock or SystemClock()
        self._debounce = debounce
        self._ttl = timedelta(seconds=ttl)

        self._typing = False
        self._timer: TimerHandle | None = None
        self._subscription: Subscription | None = None
        self._indicators: dict[UUID, TypingIndicator] = {}
        self._newest: dict[UUID, datetime] = {}

    @property
    def is_typing(self) -> bool:
        """Whether the local user is inside a typing burst."""
        return self._typing

    async def start(self) -> None:
        self._subscription = await self._feed.subscribe(
            Collection.TYPING_INDICATORS,
            self._on_change,
            filters={"conversation_id": self.conversation_id},
        )
        try:
            async with self._uow_factory() as uow:
                rows = await typing_service.list_typing(self.conversation_id, self.viewer_id, uow)
        except TransientStoreError:
            logger.warning("Could not load typing state for %s", self.conversation_id, exc_info=True)
            return
        for indicator in rows:
            self._apply(indicator)

    async def close(self) -> None:
        self._cancel_timer()
        if self._typing:
            self._typing = False
            await self.set_typing(False)
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None

    async def on_input(self, text: str) -> None:
        if not text.strip():
            return
        opening = not self._typing
        self._typing = True
        self._cancel_timer()
        self._timer = self._scheduler.call_later(self._debounce, self._on_idle)
        if opening:
            await self.set_typing(True)
            if not self._typing:
                # burst ended while the write was in flight
                await self.set_typing(False)

    async def on_message_sent(self) -> None:
        self._cancel_timer()
        self._typing = False
        await self.set_typing(False)

    async def set_typing(self, is_typing: bool) -> bool:
        """Best effort write; a store failure is logged and reported as False."""
        try:
            async with self._uow_factory() as uow:
                await typing_service.set_typing(
                    self.conversation_id, self.viewer_id, is_typing, uow, clock=self._clock,
                )
        except TransientStoreError:
            logger.warning(
                "Typing update (%s) failed for %s", is_typing, self.conversation_id, exc_info=True,
            )
            return False
        return True

    def typing_users(self) -> list[UUID]:
        """Other participants currently typing, oldest burst first."""
        now = self._clock.now()
        active = [
            ind for uid, ind in self._indicators.items()
            if uid != self.viewer_id and ind.is_active(now, self._ttl)
        ]
        active.sort(key=lambda ind: ind.updated_at)
        return [ind.user_id for ind in active]

    async def _on_idle(self) -> None:
        self._timer = None
        if not self._typing:
            return
        self._typing = False
        await self.set_typing(False)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _on_change(self, event: ChangeEvent) -> None:
        try:
            indicator = indicator_from_row(event.new_row)
        except (KeyError, ValueError, TypeError):
            logger.warning("Malformed typing payload: %r", event.new_row)
            return
        if indicator.conversation_id == self.conversation_id:
            self._apply(indicator)

    def _apply(self, indicator: TypingIndicator) -> None:
        newest = self._newest.get(indicator.user_id)
        if newest is not None and indicator.updated_at < newest:
            return
        self._newest[indicator.user_id] = indicator.updated_at
        if indicator.is_typing:
            self._indicators[indicator.user_id] = indicator
        else:
            self._indicators.pop(indicator.user_id, None)
