"""Redis Pub/Sub change feed: publish side and per-subscription listener tasks."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection as Items, Mapping
from typing import Any

import redis.asyncio as aioredis

from direct_chat.application.ports.change_feed import OnChangeCallback
from direct_chat.domain.events.change import ChangeEvent
from direct_chat.domain.value_objects.enums import ChangeType, Collection
from direct_chat.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)


def channel_for(prefix: str, collection: Collection) -> str:
    return f"{prefix}.{collection}"


class RedisChangePublisher:
    """Implements application.ports.change_feed.ChangePublisher."""

    def __init__(self, redis: aioredis.Redis, prefix: str) -> None:
        self._redis = redis
        self._prefix = prefix

    async def publish(self, event: ChangeEvent) -> None:
        await self._redis.publish(
            channel_for(self._prefix, event.collection), serialize_event(event)
        )


class RedisPubSubSubscription:
    """Background task that listens to one collection channel and dispatches matching events."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnChangeCallback,
        *,
        filters: Mapping[str, Any] | None = None,
        events: Items[ChangeType] | None = None,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._filters = dict(filters or {})
        self._events = frozenset(events) if events else None
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        pubsub = self._redis.pubsub()
        # subscribe before returning so no event published afterwards is missed
        await pubsub.subscribe(self._channel)
        self._task = asyncio.create_task(
            self._listen(pubsub), name=f"redis-pubsub-{self._channel}",
        )
        logger.info("Change feed subscribed: channel=%s filters=%s", self._channel, self._filters)

    async def close(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Change feed unsubscribed: channel=%s", self._channel)

    def _wants(self, event: ChangeEvent) -> bool:
        if self._events is not None and event.event_type not in self._events:
            return False
        return event.matches(self._filters)

    async def _listen(self, pubsub: aioredis.client.PubSub) -> None:
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    event = deserialize_event(message["data"])
                    if self._wants(event):
                        await self._callback(event)
                except Exception:
                    logger.exception("Error processing change notification")
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()


class RedisChangeFeed:
    """Implements application.ports.change_feed.ChangeFeed over Redis Pub/Sub."""

    def __init__(self, redis: aioredis.Redis, prefix: str) -> None:
        self._redis = redis
        self._prefix = prefix

    async def subscribe(
        self,
        collection: Collection,
        callback: OnChangeCallback,
        *,
        filters: Mapping[str, Any] | None = None,
        events: Items[ChangeType] | None = None,
    ) -> RedisPubSubSubscription:
        subscription = RedisPubSubSubscription(
            self._redis,
            channel_for(self._prefix, collection),
            callback,
            filters=filters,
            events=events,
        )
        await subscription.start()
        return subscription
