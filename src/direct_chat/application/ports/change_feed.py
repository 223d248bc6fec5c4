from __future__ import annotations

from collections.abc import Awaitable, Callable, Collection as Items, Mapping
from typing import Any, Protocol

from direct_chat.domain.events.change import ChangeEvent
from direct_chat.domain.value_objects.enums import ChangeType, Collection

OnChangeCallback = Callable[[ChangeEvent], Awaitable[None]]


class Subscription(Protocol):
    async def close(self) -> None: ...


class ChangeFeed(Protocol):
    """Push channel saying "rows in a collection changed".

    Delivery is at-least-once and unordered across writers; consumers
    re-derive state from the store instead of trusting the payload.
    """

    async def subscribe(
        self,
        collection: Collection,
        callback: OnChangeCallback,
        *,
        filters: Mapping[str, Any] | None = None,
        events: Items[ChangeType] | None = None,
    ) -> Subscription: ...


class ChangePublisher(Protocol):
    async def publish(self, event: ChangeEvent) -> None: ...
