from __future__ import annotations

import json
import uuid

import pytest

from direct_chat.domain.events.change import ChangeEvent, parse_topic, row_of
from direct_chat.domain.value_objects.enums import ChangeType, Collection
from direct_chat.infrastructure.bus.redis_pubsub import channel_for
from direct_chat.infrastructure.bus.serializer import deserialize_event, serialize_event
from direct_chat.infrastructure.ws.manager import Topic
from tests.conftest import make_conversation, make_message


def test_topic_and_parse():
    event = ChangeEvent(Collection.TYPING_INDICATORS, ChangeType.UPDATE, {})
    assert event.topic == "typing_indicators.update"
    assert parse_topic(event.topic) == (Collection.TYPING_INDICATORS, ChangeType.UPDATE)


def test_parse_topic_rejects_unknown():
    with pytest.raises(ValueError):
        parse_topic("orders.insert")


def test_matches_compares_as_strings():
    conv_id = uuid.uuid4()
    event = ChangeEvent(Collection.MESSAGES, ChangeType.INSERT, {"conversation_id": str(conv_id)})

    assert event.matches({"conversation_id": conv_id})
    assert event.matches(None)
    assert not event.matches({"conversation_id": uuid.uuid4()})
    assert not event.matches({"missing": "x"})


def test_serialized_envelope():
    msg = make_message(uuid.uuid4(), uuid.uuid4(), "hi")
    raw = serialize_event(ChangeEvent(Collection.MESSAGES, ChangeType.INSERT, row_of(msg)))

    envelope = json.loads(raw)
    assert envelope["event"] == "messages.insert"
    assert envelope["data"]["id"] == str(msg.id)
    assert envelope["data"]["created_at"] == msg.created_at.isoformat()

    event = deserialize_event(raw)
    assert event.collection == Collection.MESSAGES
    assert event.matches({"conversation_id": msg.conversation_id})


def test_channel_per_collection():
    assert channel_for("chat.changes", Collection.PROFILES) == "chat.changes.profiles"


def test_ws_topic_matching():
    me, other, third = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    mine = make_conversation(me, other)
    theirs = make_conversation(other, third)
    conv_event = lambda c: ChangeEvent(Collection.CONVERSATIONS, ChangeType.UPDATE, row_of(c))  # noqa: E731
    msg_event = ChangeEvent(
        Collection.MESSAGES, ChangeType.INSERT, row_of(make_message(mine.id, other))
    )

    all_mine = Topic(Collection.CONVERSATIONS)
    assert all_mine.matches(conv_event(mine), me)
    assert not all_mine.matches(conv_event(theirs), me)

    one = Topic(Collection.CONVERSATIONS, theirs.id)
    assert one.matches(conv_event(theirs), other)

    log = Topic(Collection.MESSAGES, mine.id)
    assert log.matches(msg_event, me)
    assert not Topic(Collection.MESSAGES, theirs.id).matches(msg_event, me)
    assert not Topic(Collection.TYPING_INDICATORS, mine.id).matches(msg_event, me)
