from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from direct_chat.domain.entities.conversation import Conversation, canonical_pair
from direct_chat.infrastructure.db.mappers import conversation as mapper
from direct_chat.infrastructure.db.models.conversation import ConversationModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        result = await self._session.get(ConversationModel, conversation_id)
        return mapper.model_to_entity(result) if result else None

    async def get_by_pair(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        pair_low, pair_high = canonical_pair(user_a, user_b)
        stmt = select(ConversationModel).where(
            ConversationModel.pair_low == pair_low,
            ConversationModel.pair_high == pair_high,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .where(
                or_(
                    ConversationModel.user1_id == user_id,
                    ConversationModel.user2_id == user_id,
                )
            )
            .order_by(
                ConversationModel.last_message_time.desc().nullslast(),
                ConversationModel.updated_at.desc(),
            )
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        """Insert on the canonical pair. Returns (conversation, created_flag)."""
        stmt = (
            pg_insert(ConversationModel)
            .values(**mapper.entity_to_values(conversation))
            .on_conflict_do_nothing(constraint="uq_conversation_pair")
            .returning(ConversationModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # Conflict: the other side won the race
        existing = await ConversationReaderRepo(self._session).get_by_pair(
            conversation.user1_id, conversation.user2_id,
        )
        assert existing is not None
        return existing, False

    async def set_last_message(
        self,
        conversation_id: UUID,
        content: str,
        ts: datetime,
    ) -> Conversation | None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(last_message_content=content, last_message_time=ts, updated_at=ts)
            .returning(ConversationModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None
