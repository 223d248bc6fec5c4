from __future__ import annotations

import logging
import uuid

from direct_chat.application.exceptions import InvalidArgumentError, NotFoundError
from direct_chat.application.policies.permissions import assert_participant, require_id
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.uow import UnitOfWork
from direct_chat.domain.entities.message import Message
from direct_chat.domain.events.change import ChangeEvent, row_of
from direct_chat.domain.value_objects.enums import ChangeType, Collection

logger = logging.getLogger(__name__)

_clock = SystemClock()


async def send_message(
    conversation_id: uuid.UUID,
    sender_id: uuid.UUID,
    content: str,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> Message:
    """Append a message and move the conversation preview in one commit."""
    conversation_id = require_id(conversation_id, "conversation_id")
    sender_id = require_id(sender_id, "sender_id")
    text = (content or "").strip()
    if not text:
        raise InvalidArgumentError("Message content is empty")

    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_participant(conversation, sender_id)

    now = clock.now()
    msg = await uow.messages_w.create(
        Message(
            id=uuid.uuid4(),
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=text,
            read_at=None,
            created_at=now,
            updated_at=now,
        )
    )
    updated = await uow.conversations_w.set_last_message(
        conversation_id, msg.content, msg.created_at,
    )

    await uow.outbox.add(ChangeEvent(Collection.MESSAGES, ChangeType.INSERT, row_of(msg)))
    if updated is not None:
        await uow.outbox.add(
            ChangeEvent(Collection.CONVERSATIONS, ChangeType.UPDATE, row_of(updated))
        )
    await uow.commit()
    return msg


async def list_messages(
    conversation_id: uuid.UUID,
    user_id: uuid.UUID,
    uow: UnitOfWork,
) -> list[Message]:
    conversation_id = require_id(conversation_id, "conversation_id")
    user_id = require_id(user_id, "user_id")
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_participant(conversation, user_id)
    return await uow.messages.list_messages(conversation_id)


async def mark_read(
    message_id: uuid.UUID,
    reader_id: uuid.UUID,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> Message | None:
    """Set read_at on someone else's message.

    Returns None when the reader authored the message (nothing to mark).
    Marking an already-read message returns it unchanged.
    """
    message_id = require_id(message_id, "message_id")
    reader_id = require_id(reader_id, "reader_id")

    message = await uow.messages.get_by_id(message_id)
    if message is None:
        raise NotFoundError("Message not found")
    conversation = await uow.conversations.get_by_id(message.conversation_id)
    assert_participant(conversation, reader_id)

    if message.sender_id == reader_id:
        return None
    if message.read_at is not None:
        return message

    updated = await uow.messages_w.mark_read(message_id, reader_id, clock.now())
    if updated is None:
        # another device of the reader got there first
        return await uow.messages.get_by_id(message_id)

    await uow.outbox.add(ChangeEvent(Collection.MESSAGES, ChangeType.UPDATE, row_of(updated)))
    await uow.commit()
    return updated
