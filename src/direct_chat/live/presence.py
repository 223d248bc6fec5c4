from __future__ import annotations

import asyncio
import contextlib
import logging
from uuid import UUID

from direct_chat.application.exceptions import NotFoundError, TransientStoreError
from direct_chat.application.ports.clock import Clock, SystemClock
from direct_chat.application.uow import UnitOfWorkFactory
from direct_chat.config import settings
from direct_chat.services import profile_service

logger = logging.getLogger(__name__)


class PresenceHeartbeat:
    """Keeps ``is_online`` set while running and clears it on stop.

    Readers treat a profile whose last heartbeat is older than
    PRESENCE_STALE_SECONDS as offline, which covers clients that die
    without calling stop().
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        user_id: UUID,
        *,
        interval: float = settings.PRESENCE_HEARTBEAT_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self.user_id = user_id
        self._interval = interval
        self._clock = clock or SystemClock()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        await self.update(True)
        self._task = asyncio.create_task(self._beat(), name=f"presence:{self.user_id}")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self.update(False)

    async def update(self, is_online: bool) -> bool:
        try:
            async with self._uow_factory() as uow:
                await profile_service.update_presence(
                    self.user_id, is_online, uow, clock=self._clock,
                )
        except NotFoundError:
            logger.warning("Presence update skipped, no profile yet for %s", self.user_id)
            return False
        except TransientStoreError:
            logger.warning("Presence update failed for %s", self.user_id, exc_info=True)
            return False
        return True

    async def _beat(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.update(True)
