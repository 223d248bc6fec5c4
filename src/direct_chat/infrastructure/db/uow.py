from __future__ import annotations

from types import TracebackType
from typing import Self

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from direct_chat.application.exceptions import TransientStoreError
from direct_chat.infrastructure.db.repositories.conversation import (
    ConversationReaderRepo,
    ConversationWriterRepo,
)
from direct_chat.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from direct_chat.infrastructure.db.repositories.outbox import OutboxWriterRepo
from direct_chat.infrastructure.db.repositories.profile import (
    ProfileReaderRepo,
    ProfileWriterRepo,
)
from direct_chat.infrastructure.db.repositories.typing_indicator import (
    TypingIndicatorReaderRepo,
    TypingIndicatorWriterRepo,
)


class SqlAlchemyUoW:
    """Concrete Unit-of-Work backed by a single AsyncSession.

    Leaving the ``async with`` block on a SQLAlchemy error rolls back and
    re-raises it as TransientStoreError.
    """

    def __init__(self, session: AsyncSession, *, owns_session: bool = False) -> None:
        self._session = session
        self._owns_session = owns_session
        self.profiles = ProfileReaderRepo(session)
        self.profiles_w = ProfileWriterRepo(session)
        self.conversations = ConversationReaderRepo(session)
        self.conversations_w = ConversationWriterRepo(session)
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)
        self.typing = TypingIndicatorReaderRepo(session)
        self.typing_w = TypingIndicatorWriterRepo(session)
        self.outbox = OutboxWriterRepo(session)

    async def flush(self) -> None:
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is not None:
                await self.rollback()
        finally:
            if self._owns_session:
                await self._session.close()
        if isinstance(exc_val, SQLAlchemyError):
            raise TransientStoreError(str(exc_val)) from exc_val


class SqlAlchemyUoWFactory:
    """Hands out a fresh session-owning UoW per ``async with`` block."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    def __call__(self) -> SqlAlchemyUoW:
        return SqlAlchemyUoW(self._sessionmaker(), owns_session=True)
