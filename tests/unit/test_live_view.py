from __future__ import annotations

import asyncio

import pytest

from direct_chat.domain.events.change import ChangeEvent
from direct_chat.domain.value_objects.enums import ChangeType, Collection
from direct_chat.live.base import LiveView
from direct_chat.live.message_log import MessageLogView
from direct_chat.services import message_service


class GatedView(LiveView[str]):
    """Each fetch waits for the test to hand it a result."""

    def __init__(self, uow_factory, feed) -> None:
        super().__init__(uow_factory, feed)
        self.state: str | None = None
        self.gates: list[asyncio.Future[str]] = []

    async def _subscribe(self) -> None:
        await self._watch(Collection.MESSAGES)

    async def _fetch(self, uow) -> str:
        gate = asyncio.get_running_loop().create_future()
        self.gates.append(gate)
        return await gate

    def _apply(self, state: str) -> None:
        self.state = state


@pytest.mark.asyncio
async def test_stale_response_is_discarded(uow_factory, feed):
    view = GatedView(uow_factory, feed)

    first = asyncio.create_task(view.refresh())
    second = asyncio.create_task(view.refresh())
    await asyncio.sleep(0)
    assert len(view.gates) == 2

    view.gates[1].set_result("new")
    assert await second is True
    view.gates[0].set_result("old")
    assert await first is False

    assert view.state == "new"


@pytest.mark.asyncio
async def test_in_order_responses_both_apply(uow_factory, feed):
    view = GatedView(uow_factory, feed)
    applied = []
    view.add_listener(lambda: applied.append(view.state))

    first = asyncio.create_task(view.refresh())
    second = asyncio.create_task(view.refresh())
    await asyncio.sleep(0)

    view.gates[0].set_result("a")
    await first
    view.gates[1].set_result("b")
    await second

    assert applied == ["a", "b"]


@pytest.mark.asyncio
async def test_store_failure_keeps_stale_view(uow_factory, store, feed, conversation, alice, uow):
    await message_service.send_message(conversation.id, alice.id, "one", uow)
    view = MessageLogView(uow_factory, feed, conversation.id, alice.id)
    await view.start()

    store.unavailable = True
    assert await view.refresh() is False

    assert [m.content for m in view.messages] == ["one"]


@pytest.mark.asyncio
async def test_duplicate_notifications_are_harmless(uow_factory, feed, conversation, alice, uow):
    msg = await message_service.send_message(conversation.id, alice.id, "one", uow)
    view = MessageLogView(uow_factory, feed, conversation.id, alice.id)
    await view.start()

    event = ChangeEvent(Collection.MESSAGES, ChangeType.INSERT, {"conversation_id": conversation.id, "id": msg.id})
    await feed.publish(event)
    await feed.publish(event)

    assert [m.id for m in view.messages] == [msg.id]


@pytest.mark.asyncio
async def test_view_only_follows_its_conversation(uow, uow_factory, feed, store, conversation, alice, carol):
    from direct_chat.services import conversation_service

    view = MessageLogView(uow_factory, feed, conversation.id, alice.id)
    await view.start()
    calls = []
    view.add_listener(lambda: calls.append(True))

    other = await conversation_service.resolve_conversation(alice.id, carol.id, uow)
    await message_service.send_message(other.id, carol.id, "elsewhere", uow)

    assert calls == []
    assert view.messages == ()


@pytest.mark.asyncio
async def test_close_drops_subscriptions(uow_factory, feed, conversation, alice):
    view = MessageLogView(uow_factory, feed, conversation.id, alice.id)
    await view.start()
    assert len(feed.active) == 1

    await view.close()

    assert feed.active == []


def test_view_must_implement_every_hook(uow_factory, feed):
    class NoApply(LiveView[str]):
        async def _subscribe(self) -> None:
            await self._watch(Collection.MESSAGES)

        async def _fetch(self, uow) -> str:
            return ""

    with pytest.raises(TypeError):
        NoApply(uow_factory, feed)
