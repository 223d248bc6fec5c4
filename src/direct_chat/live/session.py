"""Client-side composition: one signed-in user with their open conversations."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from direct_chat.application.ports.change_feed import ChangeFeed
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.ports.scheduler import AsyncioScheduler, Scheduler
from direct_chat.application.uow import UnitOfWorkFactory
from direct_chat.live.directory import ConversationDirectoryView
from direct_chat.live.message_log import MessageLogView
from direct_chat.live.presence import PresenceHeartbeat
from direct_chat.live.typing import TypingCoordinator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OpenConversation:
    conversation_id: UUID
    messages: MessageLogView
    typing: TypingCoordinator

    async def close(self) -> None:
        await self.typing.close()
        await self.messages.close()


class ChatSession:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        change_feed: ChangeFeed,
        user_id: UUID,
        *,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
        heartbeat: bool = True,
    ) -> None:
        self._uow_factory = uow_factory
        self._feed = change_feed
        self.user_id = user_id
        self._scheduler = scheduler or AsyncioScheduler()
        self._clock = clock or SystemClock()
        self.directory = ConversationDirectoryView(uow_factory, change_feed, user_id, clock=self._clock)
        self.presence = PresenceHeartbeat(uow_factory, user_id, clock=self._clock) if heartbeat else None
        self._open: dict[UUID, OpenConversation] = {}

    @property
    def open_conversations(self) -> dict[UUID, OpenConversation]:
        return dict(self._open)

    async def start(self) -> None:
        if self.presence is not None:
            await self.presence.start()
        await self.directory.start()
        logger.info("Chat session started for %s", self.user_id)

    async def open_with(self, other_id: UUID) -> OpenConversation | None:
        conversation_id = await self.directory.create_conversation(other_id)
        if conversation_id is None:
            return None
        return await self.open(conversation_id)

    async def open(self, conversation_id: UUID) -> OpenConversation:
        existing = self._open.get(conversation_id)
        if existing is not None:
            return existing

        typing = TypingCoordinator(
            self._uow_factory, self._feed, conversation_id, self.user_id,
            scheduler=self._scheduler, clock=self._clock,
        )
        messages = MessageLogView(
            self._uow_factory, self._feed, conversation_id, self.user_id,
            typing=typing, clock=self._clock,
        )
        try:
            await typing.start()
            await messages.start()
        except Exception:
            await messages.close()
            await typing.close()
            raise
        opened = OpenConversation(conversation_id, messages, typing)
        self._open[conversation_id] = opened
        return opened

    async def close_conversation(self, conversation_id: UUID) -> None:
        opened = self._open.pop(conversation_id, None)
        if opened is not None:
            await opened.close()

    async def close(self) -> None:
        for conversation_id in list(self._open):
            await self.close_conversation(conversation_id)
        await self.directory.close()
        if self.presence is not None:
            await self.presence.stop()
        logger.info("Chat session closed for %s", self.user_id)
