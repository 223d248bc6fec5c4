from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from direct_chat.domain.entities.profile import Profile
from direct_chat.infrastructure.db.mappers import profile as mapper
from direct_chat.infrastructure.db.models.profile import ProfileModel


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProfileReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> Profile | None:
        result = await self._session.get(ProfileModel, user_id)
        return mapper.model_to_entity(result) if result else None

    async def get_many(self, user_ids: Iterable[UUID]) -> list[Profile]:
        ids = list(user_ids)
        if not ids:
            return []
        result = await self._session.execute(
            select(ProfileModel).where(ProfileModel.id.in_(ids))
        )
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def get_by_email(self, email: str) -> Profile | None:
        result = await self._session.execute(
            select(ProfileModel).where(ProfileModel.email == email)
        )
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def get_by_username(self, username: str) -> Profile | None:
        result = await self._session.execute(
            select(ProfileModel).where(ProfileModel.username == username)
        )
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def search(self, term: str, *, limit: int = 10) -> list[Profile]:
        pattern = f"%{_escape_like(term)}%"
        stmt = (
            select(ProfileModel)
            .where(
                or_(
                    ProfileModel.username.ilike(pattern, escape="\\"),
                    ProfileModel.email.ilike(pattern, escape="\\"),
                )
            )
            .order_by(ProfileModel.username, ProfileModel.id)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_all(self) -> list[Profile]:
        result = await self._session.execute(
            select(ProfileModel).order_by(ProfileModel.username)
        )
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ProfileWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert_identity(
        self,
        user_id: UUID,
        username: str,
        email: str | None,
        avatar_url: str | None,
        ts: datetime,
    ) -> Profile:
        stmt = (
            pg_insert(ProfileModel)
            .values(
                id=user_id,
                username=username,
                email=email,
                avatar_url=avatar_url,
                last_seen=ts,
                created_at=ts,
                updated_at=ts,
            )
            .on_conflict_do_update(
                index_elements=[ProfileModel.id],
                set_={
                    "username": username,
                    "email": email,
                    "avatar_url": avatar_url,
                    "updated_at": ts,
                },
            )
            .returning(ProfileModel)
        )
        result = await self._session.execute(stmt)
        return mapper.model_to_entity(result.scalar_one())

    async def set_presence(
        self, user_id: UUID, is_online: bool, last_seen: datetime
    ) -> Profile | None:
        stmt = (
            update(ProfileModel)
            .where(ProfileModel.id == user_id)
            .values(is_online=is_online, last_seen=last_seen, updated_at=func.now())
            .returning(ProfileModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None
