from __future__ import annotations

import logging
from uuid import UUID

from direct_chat.application.exceptions import TransientStoreError
from direct_chat.application.ports.change_feed import ChangeFeed
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.uow import UnitOfWork, UnitOfWorkFactory
from direct_chat.domain.entities.message import Message
from direct_chat.domain.value_objects.enums import ChangeType, Collection
from direct_chat.live.base import LiveView
from direct_chat.live.typing import TypingCoordinator
from direct_chat.services import message_service

logger = logging.getLogger(__name__)


class MessageLogView(LiveView[list[Message]]):
    """Ordered message log of one open conversation, as seen by ``viewer_id``."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        change_feed: ChangeFeed,
        conversation_id: UUID,
        viewer_id: UUID,
        *,
        typing: TypingCoordinator | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(uow_factory, change_feed)
        self.conversation_id = conversation_id
        self.viewer_id = viewer_id
        self._typing = typing
        self._clock = clock or SystemClock()
        self._messages: tuple[Message, ...] = ()

    def __repr__(self) -> str:
        return f"MessageLogView({self.conversation_id})"

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._messages

    def unread(self) -> list[Message]:
        return [
            m for m in self._messages
            if m.sender_id != self.viewer_id and m.read_at is None
        ]

    async def send(self, content: str) -> Message | None:
        """Send as the viewer. Returns None if the store rejected the write.

        Blank content and non-membership still raise, before anything is sent.
        """
        try:
            async with self._uow_factory() as uow:
                msg = await message_service.send_message(
                    self.conversation_id, self.viewer_id, content, uow, clock=self._clock,
                )
        except TransientStoreError:
            logger.warning("Send failed in conversation %s", self.conversation_id, exc_info=True)
            return None

        if self._typing is not None:
            await self._typing.on_message_sent()
        await self.refresh()
        return msg

    async def mark_read(self, message_id: UUID) -> bool:
        try:
            async with self._uow_factory() as uow:
                await message_service.mark_read(
                    message_id, self.viewer_id, uow, clock=self._clock,
                )
        except TransientStoreError:
            logger.warning("mark_read failed for message %s", message_id, exc_info=True)
            return False
        return True

    async def mark_all_read(self) -> int:
        marked = 0
        for msg in self.unread():
            if await self.mark_read(msg.id):
                marked += 1
        return marked

    async def _subscribe(self) -> None:
        await self._watch(
            Collection.MESSAGES,
            filters={"conversation_id": self.conversation_id},
            events=(ChangeType.INSERT, ChangeType.UPDATE),
        )

    async def _fetch(self, uow: UnitOfWork) -> list[Message]:
        return await message_service.list_messages(self.conversation_id, self.viewer_id, uow)

    def _apply(self, state: list[Message]) -> None:
        self._messages = tuple(state)
