"""Outbox worker: polls pending change events, publishes them to the Redis change feed."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import redis.asyncio as aioredis

from direct_chat.application.ports.change_feed import ChangePublisher
from direct_chat.application.uow import UnitOfWorkFactory
from direct_chat.config import settings
from direct_chat.infrastructure.bus.redis_pubsub import RedisChangePublisher
from direct_chat.infrastructure.db.session import uow_factory
from direct_chat.logging_config import configure_logging

logger = logging.getLogger(__name__)

BASE_DELAY_SECONDS = 5
MAX_DELAY_SECONDS = 300


def _calc_backoff(attempts: int) -> datetime:
    delay = min(BASE_DELAY_SECONDS * (2 ** attempts), MAX_DELAY_SECONDS)
    return datetime.now(timezone.utc) + timedelta(seconds=delay)


async def run_outbox_worker() -> None:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    publisher = RedisChangePublisher(redis, settings.CHANGE_FEED_CHANNEL_PREFIX)

    logger.info(
        "Outbox worker started (poll=%.1fs, batch=%d, max_attempts=%d)",
        settings.OUTBOX_POLL_INTERVAL,
        settings.OUTBOX_BATCH_SIZE,
        settings.OUTBOX_MAX_ATTEMPTS,
    )

    try:
        while True:
            try:
                await process_batch(publisher, uow_factory)
            except Exception:
                logger.exception("Outbox worker loop error")
            await asyncio.sleep(settings.OUTBOX_POLL_INTERVAL)
    finally:
        await redis.aclose()


async def process_batch(
    publisher: ChangePublisher,
    uow_factory: UnitOfWorkFactory,
    *,
    batch_size: int = settings.OUTBOX_BATCH_SIZE,
    max_attempts: int = settings.OUTBOX_MAX_ATTEMPTS,
) -> int:
    """Publish one batch; returns how many records were sent."""
    async with uow_factory() as uow:
        batch = await uow.outbox.fetch_pending(batch_size)
        if not batch:
            return 0

        sent_ids: list[int] = []
        for record in batch:
            if record.attempts >= max_attempts:
                logger.warning("Outbox record %d exceeded max attempts, dropping", record.id)
                await uow.outbox.mark_dead(record.id, "max attempts exceeded")
                continue
            try:
                await publisher.publish(record.to_event())
                sent_ids.append(record.id)
            except Exception as exc:
                logger.exception("Failed to publish outbox record %d", record.id)
                await uow.outbox.mark_failed(record.id, _calc_backoff(record.attempts), str(exc))

        if sent_ids:
            await uow.outbox.mark_sent(sent_ids)

        await uow.commit()
        if sent_ids:
            logger.info("Published %d outbox records", len(sent_ids))
        return len(sent_ids)


def main() -> None:
    configure_logging()
    asyncio.run(run_outbox_worker())


if __name__ == "__main__":
    main()
