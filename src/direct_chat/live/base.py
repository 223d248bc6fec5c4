"""Materialized views kept fresh by re-fetching on change notifications."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Collection as Items, Mapping
from typing import Any, Generic, TypeVar

from direct_chat.application.exceptions import TransientStoreError
from direct_chat.application.ports.change_feed import ChangeFeed, Subscription
from direct_chat.application.uow import UnitOfWork, UnitOfWorkFactory
from direct_chat.domain.events.change import ChangeEvent
from direct_chat.domain.value_objects.enums import ChangeType, Collection

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveView(ABC, Generic[T]):
    """Full-refresh view over the store.

    Every refresh replaces the whole state, so duplicate or reordered
    notifications cannot corrupt it. Refreshes are numbered in issue order;
    a response that completes after a newer one has been applied is dropped.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, change_feed: ChangeFeed) -> None:
        self._uow_factory = uow_factory
        self._feed = change_feed
        self._subscriptions: list[Subscription] = []
        self._listeners: list[Callable[[], None]] = []
        self._issued = 0
        self._applied = 0

    async def start(self) -> None:
        # subscribe first so nothing committed between fetch and subscribe is missed
        await self._subscribe()
        await self.refresh()

    async def close(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            await subscription.close()

    def add_listener(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    async def refresh(self) -> bool:
        self._issued += 1
        seq = self._issued
        try:
            async with self._uow_factory() as uow:
                state = await self._fetch(uow)
        except TransientStoreError:
            logger.warning("%s refresh #%d failed, keeping stale view", self, seq, exc_info=True)
            return False

        if seq < self._applied:
            logger.debug("%s dropped stale refresh #%d (applied #%d)", self, seq, self._applied)
            return False
        self._applied = seq
        self._apply(state)
        for listener in self._listeners:
            listener()
        return True

    async def _watch(
        self,
        collection: Collection,
        *,
        filters: Mapping[str, Any] | None = None,
        events: Items[ChangeType] | None = None,
    ) -> None:
        subscription = await self._feed.subscribe(
            collection, self._on_change, filters=filters, events=events,
        )
        self._subscriptions.append(subscription)

    async def _on_change(self, event: ChangeEvent) -> None:
        logger.debug("%s notified: %s", self, event.topic)
        await self.refresh()

    @abstractmethod
    async def _subscribe(self) -> None: ...

    @abstractmethod
    async def _fetch(self, uow: UnitOfWork) -> T: ...

    @abstractmethod
    def _apply(self, state: T) -> None: ...
