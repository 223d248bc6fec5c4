from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle: ...


class AsyncioScheduler:
    """Single-shot timers backed by event-loop tasks."""

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        return asyncio.create_task(self._fire(delay, callback), name="timer")

    @staticmethod
    async def _fire(delay: float, callback: TimerCallback) -> None:
        await asyncio.sleep(delay)
        try:
            await callback()
        except Exception:
            logger.exception("Timer callback failed")
