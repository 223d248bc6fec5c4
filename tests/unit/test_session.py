"""Two clients sharing one store and one change feed."""
from __future__ import annotations

import uuid

import pytest

from direct_chat.application.exceptions import NotAMemberError
from direct_chat.live.session import ChatSession


@pytest.fixture
def make_session(uow_factory, feed, scheduler, clock):
    def _make(user_id, heartbeat: bool = False) -> ChatSession:
        return ChatSession(
            uow_factory, feed, user_id, scheduler=scheduler, clock=clock, heartbeat=heartbeat,
        )

    return _make


@pytest.mark.asyncio
async def test_end_to_end_exchange(make_session, feed, clock, alice, bob):
    a = make_session(alice.id)
    b = make_session(bob.id)
    await a.start()
    await b.start()

    a_conv = await a.open_with(bob.id)
    assert a_conv is not None
    assert [e.conversation.id for e in b.directory.entries] == [a_conv.conversation_id]
    assert b.directory.entries[0].counterpart == alice

    clock.advance(1)
    await a_conv.typing.on_input("h")
    b_conv = await b.open(a_conv.conversation_id)
    assert b_conv.typing.typing_users() == [alice.id]

    sent = await a_conv.messages.send("hi")

    assert sent is not None and sent.content == "hi"
    assert a_conv.typing.is_typing is False
    assert b_conv.typing.typing_users() == []
    assert [m.content for m in b_conv.messages.messages] == ["hi"]
    assert [m.content for m in a_conv.messages.messages] == ["hi"]
    preview = b.directory.entries[0].conversation
    assert preview.last_message_content == "hi"
    assert preview.last_message_time == sent.created_at

    assert await b_conv.messages.mark_all_read() == 1

    assert a_conv.messages.messages[0].read_at is not None
    assert b_conv.messages.unread() == []
    assert len(a.directory.entries) == 1
    assert a.directory.entries[0].conversation.last_message_content == "hi"

    await a.close()
    await b.close()
    assert feed.active == []


@pytest.mark.asyncio
async def test_open_is_cached(make_session, alice, bob):
    a = make_session(alice.id)
    await a.start()

    first = await a.open_with(bob.id)
    second = await a.open_with(bob.id)

    assert first is second
    assert list(a.open_conversations) == [first.conversation_id]


@pytest.mark.asyncio
async def test_send_returns_none_when_store_down(make_session, store, alice, bob):
    a = make_session(alice.id)
    await a.start()
    opened = await a.open_with(bob.id)

    store.unavailable = True
    assert await opened.messages.send("lost?") is None
    store.unavailable = False

    assert opened.messages.messages == ()


@pytest.mark.asyncio
async def test_outsider_cannot_open(make_session, feed, conversation, carol):
    c = make_session(carol.id)
    await c.start()
    subscriptions = len(feed.active)

    with pytest.raises(NotAMemberError):
        await c.open(conversation.id)

    assert len(feed.active) == subscriptions
    assert c.open_conversations == {}


@pytest.mark.asyncio
async def test_heartbeat_marks_presence(make_session, store, alice):
    a = make_session(alice.id, heartbeat=True)

    await a.start()
    assert store.profiles[alice.id].is_online is True

    await a.close()
    assert store.profiles[alice.id].is_online is False


@pytest.mark.asyncio
async def test_session_starts_before_profile_is_ingested(make_session, store):
    user_id = uuid.uuid4()
    s = make_session(user_id, heartbeat=True)

    await s.start()
    assert s.presence.running
    assert s.directory.entries == ()
    assert user_id not in store.profiles

    await s.close()
    assert not s.presence.running
