from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import timedelta

import pytest

from direct_chat.application.exceptions import InvalidArgumentError, NotFoundError
from direct_chat.domain.value_objects.enums import ChangeType, Collection
from direct_chat.live.presence import PresenceHeartbeat
from direct_chat.live.profiles import ProfilesView
from direct_chat.services import profile_service
from tests.conftest import make_profile


@pytest.fixture
def directory(store):
    people = [
        make_profile("anna", email="anna@corp.io"),
        make_profile("annabel", email="bel@corp.io"),
        make_profile("bob", email="bob@corp.io"),
        make_profile("hannah", email="h@corp.io"),
    ]
    for p in people:
        store.profiles[p.id] = p
    return {p.username: p for p in people}


@pytest.mark.asyncio
async def test_find_user_prefers_exact_email(uow, directory):
    found = await profile_service.find_user("bel@corp.io", uow)
    assert found == directory["annabel"]


@pytest.mark.asyncio
async def test_find_user_exact_username_beats_fuzzy(uow, directory):
    found = await profile_service.find_user("anna", uow)
    assert found == directory["anna"]


@pytest.mark.asyncio
async def test_find_user_fuzzy_is_deterministic(uow, directory):
    # "nna" matches anna, annabel and hannah; lowest username wins
    assert await profile_service.find_user("nna", uow) == directory["anna"]
    assert await profile_service.find_user("NNA", uow) == directory["anna"]


@pytest.mark.asyncio
@pytest.mark.parametrize("term", ["", "   ", "zzz"])
async def test_find_user_no_match(uow, directory, term):
    assert await profile_service.find_user(term, uow) is None


@pytest.mark.asyncio
async def test_search_users(uow, directory):
    found = await profile_service.search_users("an", uow)
    assert [p.username for p in found] == ["anna", "annabel", "hannah"]

    limited = await profile_service.search_users("an", uow, limit=2)
    assert [p.username for p in limited] == ["anna", "annabel"]


@pytest.mark.asyncio
async def test_search_users_requires_two_chars(uow, directory):
    with pytest.raises(InvalidArgumentError):
        await profile_service.search_users("a", uow)


@pytest.mark.asyncio
async def test_get_profile_missing(uow):
    with pytest.raises(NotFoundError):
        await profile_service.get_profile(uuid.uuid4(), uow)


@pytest.mark.asyncio
async def test_update_presence(uow, feed, alice, clock):
    clock.advance(120)
    profile = await profile_service.update_presence(alice.id, True, uow, clock=clock)

    assert profile.is_online is True
    assert profile.last_seen == clock.now()
    [event] = feed.of(Collection.PROFILES)
    assert event.event_type == ChangeType.UPDATE


@pytest.mark.asyncio
async def test_update_presence_unknown_user(uow):
    with pytest.raises(NotFoundError):
        await profile_service.update_presence(uuid.uuid4(), True, uow)


def test_effectively_online_decays(alice, clock):
    online = replace(alice, is_online=True)
    stale_after = timedelta(seconds=90)

    assert online.is_effectively_online(clock.now() + timedelta(seconds=60), stale_after)
    assert not online.is_effectively_online(clock.now() + timedelta(seconds=91), stale_after)
    assert not alice.is_effectively_online(clock.now(), stale_after)


@pytest.mark.asyncio
async def test_upsert_identity_insert_then_update(uow, store, feed, clock):
    user_id = uuid.uuid4()

    created = await profile_service.upsert_identity(user_id, "dave", "d@x.io", None, uow, clock=clock)
    await profile_service.update_presence(user_id, True, uow, clock=clock)
    clock.advance(10)
    updated = await profile_service.upsert_identity(user_id, "david", "d@x.io", "http://a/v.png", uow, clock=clock)

    assert created.username == "dave"
    assert updated.username == "david"
    assert updated.avatar_url == "http://a/v.png"
    assert updated.is_online is True
    assert [e.event_type for e in feed.of(Collection.PROFILES)] == [
        ChangeType.INSERT, ChangeType.UPDATE, ChangeType.UPDATE,
    ]


@pytest.mark.asyncio
async def test_upsert_identity_requires_username(uow):
    with pytest.raises(InvalidArgumentError):
        await profile_service.upsert_identity(uuid.uuid4(), "  ", None, None, uow)


@pytest.mark.asyncio
async def test_profiles_view_tracks_presence(uow, uow_factory, feed, alice, bob, clock):
    view = ProfilesView(uow_factory, feed, clock=clock)
    await view.start()
    assert [p.username for p in view.profiles] == ["alice", "bob"]
    assert view.online() == []

    await profile_service.update_presence(bob.id, True, uow, clock=clock)

    assert view.get(bob.id).is_online is True
    assert [p.id for p in view.online()] == [bob.id]


@pytest.mark.asyncio
async def test_heartbeat_start_and_stop(uow_factory, store, alice, clock):
    heartbeat = PresenceHeartbeat(uow_factory, alice.id, interval=3600, clock=clock)

    await heartbeat.start()
    assert heartbeat.running
    assert store.profiles[alice.id].is_online is True

    await heartbeat.stop()
    assert not heartbeat.running
    assert store.profiles[alice.id].is_online is False


@pytest.mark.asyncio
async def test_heartbeat_update_is_best_effort(uow_factory, store, alice):
    heartbeat = PresenceHeartbeat(uow_factory, alice.id)
    store.unavailable = True

    assert await heartbeat.update(True) is False


@pytest.mark.asyncio
async def test_heartbeat_without_profile_is_best_effort(uow_factory, store):
    heartbeat = PresenceHeartbeat(uow_factory, uuid.uuid4(), interval=3600)

    assert await heartbeat.update(True) is False
    assert store.profiles == {}
