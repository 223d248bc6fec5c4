from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from direct_chat.domain.entities.typing_indicator import TypingIndicator
from direct_chat.infrastructure.db.mappers import typing_indicator as mapper
from direct_chat.infrastructure.db.models.typing_indicator import TypingIndicatorModel


class TypingIndicatorReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_conversation(self, conversation_id: UUID) -> list[TypingIndicator]:
        result = await self._session.execute(
            select(TypingIndicatorModel).where(
                TypingIndicatorModel.conversation_id == conversation_id
            )
        )
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class TypingIndicatorWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self,
        conversation_id: UUID,
        user_id: UUID,
        is_typing: bool,
        ts: datetime,
    ) -> TypingIndicator:
        stmt = (
            pg_insert(TypingIndicatorModel)
            .values(
                conversation_id=conversation_id,
                user_id=user_id,
                is_typing=is_typing,
                updated_at=ts,
            )
            .on_conflict_do_update(
                constraint="uq_typing_member",
                set_={"is_typing": is_typing, "updated_at": ts},
            )
            .returning(TypingIndicatorModel)
        )
        result = await self._session.execute(stmt)
        return mapper.model_to_entity(result.scalar_one())
