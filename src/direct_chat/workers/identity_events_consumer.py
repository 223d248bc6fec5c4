"""Consumer for identity-service account events via Redis Streams."""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

import redis.asyncio as aioredis

from direct_chat.application.exceptions import InvalidArgumentError
from direct_chat.application.uow import UnitOfWorkFactory
from direct_chat.config import settings
from direct_chat.infrastructure.bus.redis_streams import RedisStreamConsumer
from direct_chat.infrastructure.db.session import uow_factory
from direct_chat.logging_config import configure_logging
from direct_chat.services import profile_service

logger = logging.getLogger(__name__)


def make_handler(factory: UnitOfWorkFactory):
    async def handle_event(event_type: str, fields: dict[str, Any]) -> None:
        """Dispatch a stream event to the appropriate handler."""
        if event_type in ("user.created", "user.updated"):
            await _handle_user_upserted(factory, fields)
        else:
            logger.debug("Ignoring unknown event: %s", event_type)

    return handle_event


async def _handle_user_upserted(factory: UnitOfWorkFactory, fields: dict[str, Any]) -> None:
    try:
        user_id = uuid.UUID(str(fields["user_id"]))
    except (KeyError, ValueError):
        # acked and dropped; redelivery would not fix it
        logger.warning("Identity event without a valid user_id: %r", fields)
        return

    async with factory() as uow:
        try:
            await profile_service.upsert_identity(
                user_id,
                fields.get("username", ""),
                fields.get("email"),
                fields.get("avatar_url"),
                uow,
            )
        except InvalidArgumentError as exc:
            logger.warning("Skipping identity event for %s: %s", user_id, exc.detail)


async def run_consumer() -> None:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    consumer_name = f"consumer-{uuid.uuid4().hex[:8]}"

    consumer = RedisStreamConsumer(
        redis=redis,
        stream=settings.IDENTITY_EVENTS_STREAM,
        group=settings.IDENTITY_EVENTS_GROUP,
        consumer=consumer_name,
        callback=make_handler(uow_factory),
    )
    await consumer.start()
    logger.info("Identity events consumer started (%s)", consumer_name)

    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        pass
    finally:
        await consumer.stop()
        await redis.aclose()


def main() -> None:
    configure_logging()
    asyncio.run(run_consumer())


if __name__ == "__main__":
    main()
