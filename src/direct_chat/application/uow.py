from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Protocol, Self

from direct_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from direct_chat.application.repositories.message import MessageReader, MessageWriter
from direct_chat.application.repositories.outbox import OutboxWriter
from direct_chat.application.repositories.profile import ProfileReader, ProfileWriter
from direct_chat.application.repositories.typing_indicator import (
    TypingIndicatorReader,
    TypingIndicatorWriter,
)


class UnitOfWork(Protocol):
    profiles: ProfileReader
    profiles_w: ProfileWriter
    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter
    typing: TypingIndicatorReader
    typing_w: TypingIndicatorWriter
    outbox: OutboxWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
