from __future__ import annotations

import logging
from uuid import UUID

from direct_chat.application.dto.directory import ConversationSummary
from direct_chat.application.exceptions import TransientStoreError
from direct_chat.application.ports.change_feed import ChangeFeed
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.uow import UnitOfWork, UnitOfWorkFactory
from direct_chat.domain.entities.conversation import Conversation
from direct_chat.domain.entities.profile import Profile
from direct_chat.domain.value_objects.enums import ChangeType, Collection
from direct_chat.live.base import LiveView
from direct_chat.services import conversation_service, directory_service

logger = logging.getLogger(__name__)


class ConversationDirectoryView(LiveView[list[ConversationSummary]]):
    """The user's conversations, most recently active first, each with its counterpart."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        change_feed: ChangeFeed,
        user_id: UUID,
        *,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(uow_factory, change_feed)
        self.user_id = user_id
        self._clock = clock or SystemClock()
        self._entries: tuple[ConversationSummary, ...] = ()
        self._profiles: dict[UUID, Profile] = {}

    def __repr__(self) -> str:
        return f"ConversationDirectoryView({self.user_id})"

    @property
    def entries(self) -> tuple[ConversationSummary, ...]:
        return self._entries

    def find(self, conversation_id: UUID) -> ConversationSummary | None:
        return next((e for e in self._entries if e.conversation.id == conversation_id), None)

    def with_user(self, other_id: UUID) -> ConversationSummary | None:
        return next(
            (e for e in self._entries if e.conversation.counterpart_of(self.user_id) == other_id),
            None,
        )

    def counterpart(self, conversation: Conversation) -> Profile | None:
        return directory_service.resolve_counterpart(conversation, self.user_id, self._profiles)

    async def create_conversation(self, other_id: UUID) -> UUID | None:
        """Resolve (or create) the conversation with ``other_id``.

        Returns None on store failure. An unknown ``other_id`` raises NotFoundError.
        """
        try:
            async with self._uow_factory() as uow:
                conversation = await conversation_service.resolve_conversation(
                    self.user_id, other_id, uow, clock=self._clock,
                )
        except TransientStoreError:
            logger.warning("Could not open conversation with %s", other_id, exc_info=True)
            return None
        await self.refresh()
        return conversation.id

    async def _subscribe(self) -> None:
        await self._watch(Collection.CONVERSATIONS, filters={"user1_id": self.user_id})
        await self._watch(Collection.CONVERSATIONS, filters={"user2_id": self.user_id})
        await self._watch(Collection.MESSAGES, events=(ChangeType.INSERT,))
        await self._watch(Collection.PROFILES)

    async def _fetch(self, uow: UnitOfWork) -> list[ConversationSummary]:
        return await directory_service.list_conversations(self.user_id, uow)

    def _apply(self, state: list[ConversationSummary]) -> None:
        entries = []
        for summary in state:
            if summary.counterpart is not None:
                self._profiles[summary.counterpart.id] = summary.counterpart
                entries.append(summary)
            else:
                entries.append(
                    ConversationSummary(summary.conversation, self.counterpart(summary.conversation))
                )
        self._entries = tuple(entries)
