from __future__ import annotations

import logging
import uuid

from direct_chat.application.exceptions import InvalidArgumentError, NotFoundError
from direct_chat.application.policies.permissions import assert_participant, require_id
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.uow import UnitOfWork
from direct_chat.domain.entities.conversation import Conversation
from direct_chat.domain.events.change import ChangeEvent, row_of
from direct_chat.domain.value_objects.enums import ChangeType, Collection

logger = logging.getLogger(__name__)

_clock = SystemClock()


async def resolve_conversation(
    user_a: uuid.UUID,
    user_b: uuid.UUID,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> Conversation:
    """Return the single conversation for the unordered pair, creating it if absent.

    Creation goes through an insert-if-not-exists on the canonical pair, so
    two callers racing on the same pair (in either order) end up with the
    same row. The loser of the race gets the winner's conversation back.
    """
    user_a = require_id(user_a, "user_a")
    user_b = require_id(user_b, "user_b")
    if user_a == user_b:
        raise InvalidArgumentError("Cannot start a conversation with yourself")

    existing = await uow.conversations.get_by_pair(user_a, user_b)
    if existing is not None:
        return existing

    known = {p.id for p in await uow.profiles.get_many((user_a, user_b))}
    if user_a not in known or user_b not in known:
        raise NotFoundError("Profile not found")

    now = clock.now()
    conversation = Conversation(
        id=uuid.uuid4(),
        user1_id=user_a,
        user2_id=user_b,
        last_message_content=None,
        last_message_time=None,
        created_at=now,
        updated_at=now,
    )
    conversation, created = await uow.conversations_w.create_if_not_exists(conversation)

    if created:
        await uow.outbox.add(
            ChangeEvent(Collection.CONVERSATIONS, ChangeType.INSERT, row_of(conversation))
        )
        await uow.commit()
        logger.info(
            "Created conversation %s between %s and %s", conversation.id, user_a, user_b,
        )
    else:
        logger.debug("Conversation %s already existed for pair", conversation.id)

    return conversation


async def get_conversation(
    conversation_id: uuid.UUID,
    user_id: uuid.UUID,
    uow: UnitOfWork,
) -> Conversation:
    conversation_id = require_id(conversation_id, "conversation_id")
    user_id = require_id(user_id, "user_id")
    conversation = await uow.conversations.get_by_id(conversation_id)
    return assert_participant(conversation, user_id)
