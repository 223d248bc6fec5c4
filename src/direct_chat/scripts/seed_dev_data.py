"""Seed development data: two profiles, their conversation and a short exchange."""
from __future__ import annotations

import asyncio
import logging
import uuid

from direct_chat.infrastructure.db.session import uow_factory
from direct_chat.logging_config import configure_logging
from direct_chat.services import conversation_service, message_service, profile_service

logger = logging.getLogger(__name__)

ALICE_ID = uuid.UUID("00000000-0000-4000-8000-00000000a11c")
BOB_ID = uuid.UUID("00000000-0000-4000-8000-000000000b0b")


async def seed() -> None:
    async with uow_factory() as uow:
        await profile_service.upsert_identity(ALICE_ID, "alice", "alice@example.com", None, uow)
        await profile_service.upsert_identity(BOB_ID, "bob", "bob@example.com", None, uow)
        conv = await conversation_service.resolve_conversation(ALICE_ID, BOB_ID, uow)

        messages_data = [
            (ALICE_ID, "Hi Bob!"),
            (BOB_ID, "Hey Alice, how are you?"),
            (ALICE_ID, "Good, thanks. Lunch tomorrow?"),
            (BOB_ID, "Sounds great."),
        ]
        for sender_id, content in messages_data:
            await message_service.send_message(conv.id, sender_id, content, uow)

    logger.info("Seeded conversation %s with %d messages", conv.id, len(messages_data))


def main() -> None:
    configure_logging()
    asyncio.run(seed())


if __name__ == "__main__":
    main()
