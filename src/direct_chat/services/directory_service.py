from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping

from direct_chat.application.dto.directory import ConversationSummary
from direct_chat.application.policies.permissions import require_id
from direct_chat.application.uow import UnitOfWork
from direct_chat.domain.entities.conversation import Conversation
from direct_chat.domain.entities.profile import Profile


def order_for_directory(conversations: Iterable[Conversation]) -> list[Conversation]:
    """last_message_time desc with nulls last, ties and nulls by updated_at desc."""
    by_updated = sorted(conversations, key=lambda c: c.updated_at, reverse=True)
    with_preview = [c for c in by_updated if c.last_message_time is not None]
    without_preview = [c for c in by_updated if c.last_message_time is None]
    with_preview.sort(key=lambda c: c.last_message_time, reverse=True)
    return with_preview + without_preview


def resolve_counterpart(
    conversation: Conversation,
    user_id: uuid.UUID,
    profiles: Mapping[uuid.UUID, Profile],
) -> Profile | None:
    return profiles.get(conversation.counterpart_of(user_id))


async def list_conversations(
    user_id: uuid.UUID,
    uow: UnitOfWork,
) -> list[ConversationSummary]:
    user_id = require_id(user_id, "user_id")
    conversations = await uow.conversations.list_for_user(user_id)
    counterpart_ids = {c.counterpart_of(user_id) for c in conversations}
    profiles: dict[uuid.UUID, Profile] = {}
    if counterpart_ids:
        profiles = {p.id: p for p in await uow.profiles.get_many(counterpart_ids)}
    return [
        ConversationSummary(c, resolve_counterpart(c, user_id, profiles))
        for c in order_for_directory(conversations)
    ]
