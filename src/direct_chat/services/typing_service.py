from __future__ import annotations

import uuid

from direct_chat.application.policies.permissions import assert_participant, require_id
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.uow import UnitOfWork
from direct_chat.domain.entities.typing_indicator import TypingIndicator
from direct_chat.domain.events.change import ChangeEvent, row_of
from direct_chat.domain.value_objects.enums import ChangeType, Collection

_clock = SystemClock()


async def set_typing(
    conversation_id: uuid.UUID,
    user_id: uuid.UUID,
    is_typing: bool,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> TypingIndicator:
    conversation_id = require_id(conversation_id, "conversation_id")
    user_id = require_id(user_id, "user_id")
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_participant(conversation, user_id)

    indicator = await uow.typing_w.upsert(conversation_id, user_id, is_typing, clock.now())
    # upserts are reported as updates; consumers treat both the same way
    await uow.outbox.add(
        ChangeEvent(Collection.TYPING_INDICATORS, ChangeType.UPDATE, row_of(indicator))
    )
    await uow.commit()
    return indicator


async def list_typing(
    conversation_id: uuid.UUID,
    user_id: uuid.UUID,
    uow: UnitOfWork,
) -> list[TypingIndicator]:
    conversation_id = require_id(conversation_id, "conversation_id")
    user_id = require_id(user_id, "user_id")
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_participant(conversation, user_id)
    return await uow.typing.list_for_conversation(conversation_id)
