"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import uuid
from collections.abc import Collection as Items, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from types import TracebackType
from typing import Any
from uuid import UUID

import pytest

from direct_chat.application.dto.principal import Principal
from direct_chat.application.exceptions import TransientStoreError
from direct_chat.application.ports.change_feed import OnChangeCallback
from direct_chat.application.ports.scheduler import TimerCallback
from direct_chat.application.repositories.outbox import OutboxRecord
from direct_chat.domain.entities.conversation import Conversation, canonical_pair
from direct_chat.domain.entities.message import Message
from direct_chat.domain.entities.profile import Profile
from direct_chat.domain.entities.typing_indicator import TypingIndicator
from direct_chat.domain.events.change import ChangeEvent
from direct_chat.domain.value_objects.enums import ChangeType, Collection

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# --- time ---------------------------------------------------------------


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class ManualTimer:
    def __init__(self, when: float, callback: TimerCallback) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Timers fire only when a test calls ``advance``; the fake clock moves along."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock
        self.elapsed = 0.0
        self._timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback: TimerCallback) -> ManualTimer:
        timer = ManualTimer(self.elapsed + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self._timers if not t.cancelled]

    async def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while True:
            due = [t for t in self.pending if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self._timers.remove(timer)
            self._move_to(timer.when)
            await timer.callback()
        self._move_to(target)
        self._timers = self.pending

    def _move_to(self, when: float) -> None:
        if self.clock is not None:
            self.clock.advance(when - self.elapsed)
        self.elapsed = when


# --- change feed --------------------------------------------------------


@dataclass
class FakeSubscription:
    feed: FakeChangeFeed
    collection: Collection
    callback: OnChangeCallback
    filters: dict[str, Any]
    events: frozenset[ChangeType] | None
    closed: bool = False

    def wants(self, event: ChangeEvent) -> bool:
        if self.closed or event.collection != self.collection:
            return False
        if self.events is not None and event.event_type not in self.events:
            return False
        return event.matches(self.filters)

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeChangeFeed:
    """Synchronous in-process feed: publish awaits every matching callback."""

    subscriptions: list[FakeSubscription] = field(default_factory=list)
    published: list[ChangeEvent] = field(default_factory=list)

    async def subscribe(
        self,
        collection: Collection,
        callback: OnChangeCallback,
        *,
        filters: Mapping[str, Any] | None = None,
        events: Items[ChangeType] | None = None,
    ) -> FakeSubscription:
        sub = FakeSubscription(
            self, collection, callback, dict(filters or {}),
            frozenset(events) if events else None,
        )
        self.subscriptions.append(sub)
        return sub

    async def publish(self, event: ChangeEvent) -> None:
        self.published.append(event)
        for sub in list(self.subscriptions):
            if sub.wants(event):
                await sub.callback(event)

    @property
    def active(self) -> list[FakeSubscription]:
        return [s for s in self.subscriptions if not s.closed]

    def of(self, collection: Collection) -> list[ChangeEvent]:
        return [e for e in self.published if e.collection == collection]


# --- store --------------------------------------------------------------


@dataclass
class InMemoryStore:
    profiles: dict[UUID, Profile] = field(default_factory=dict)
    conversations: dict[UUID, Conversation] = field(default_factory=dict)
    messages: list[Message] = field(default_factory=list)
    typing: dict[tuple[UUID, UUID], TypingIndicator] = field(default_factory=dict)
    unavailable: bool = False


@dataclass
class FakeProfileReader:
    _store: InMemoryStore

    async def get_by_id(self, user_id: UUID) -> Profile | None:
        return self._store.profiles.get(user_id)

    async def get_many(self, user_ids: Iterable[UUID]) -> list[Profile]:
        return [self._store.profiles[u] for u in user_ids if u in self._store.profiles]

    async def get_by_email(self, email: str) -> Profile | None:
        return next((p for p in self._store.profiles.values() if p.email == email), None)

    async def get_by_username(self, username: str) -> Profile | None:
        return next((p for p in self._store.profiles.values() if p.username == username), None)

    async def search(self, term: str, *, limit: int = 10) -> list[Profile]:
        needle = term.lower()
        hits = [
            p for p in self._store.profiles.values()
            if needle in p.username.lower() or needle in (p.email or "").lower()
        ]
        hits.sort(key=lambda p: (p.username, p.id))
        return hits[:limit]

    async def list_all(self) -> list[Profile]:
        return sorted(self._store.profiles.values(), key=lambda p: p.username)


@dataclass
class FakeProfileWriter:
    _store: InMemoryStore

    async def upsert_identity(
        self,
        user_id: UUID,
        username: str,
        email: str | None,
        avatar_url: str | None,
        ts: datetime,
    ) -> Profile:
        current = self._store.profiles.get(user_id)
        if current is None:
            profile = Profile(user_id, username, avatar_url, email, False, ts, ts, ts)
        else:
            profile = replace(
                current, username=username, email=email, avatar_url=avatar_url, updated_at=ts,
            )
        self._store.profiles[user_id] = profile
        return profile

    async def set_presence(self, user_id: UUID, is_online: bool, last_seen: datetime) -> Profile | None:
        current = self._store.profiles.get(user_id)
        if current is None:
            return None
        profile = replace(current, is_online=is_online, last_seen=last_seen, updated_at=last_seen)
        self._store.profiles[user_id] = profile
        return profile


@dataclass
class FakeConversationReader:
    _store: InMemoryStore

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._store.conversations.get(conversation_id)

    async def get_by_pair(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        # yield so concurrent resolvers interleave between lookup and insert
        await asyncio.sleep(0)
        pair = canonical_pair(user_a, user_b)
        return next((c for c in self._store.conversations.values() if c.pair == pair), None)

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        # insertion order; the directory service does the ordering
        return [c for c in self._store.conversations.values() if c.has_participant(user_id)]


@dataclass
class FakeConversationWriter:
    _store: InMemoryStore

    async def create_if_not_exists(self, conversation: Conversation) -> tuple[Conversation, bool]:
        for existing in self._store.conversations.values():
            if existing.pair == conversation.pair:
                return existing, False
        self._store.conversations[conversation.id] = conversation
        return conversation, True

    async def set_last_message(self, conversation_id: UUID, content: str, ts: datetime) -> Conversation | None:
        current = self._store.conversations.get(conversation_id)
        if current is None:
            return None
        updated = replace(current, last_message_content=content, last_message_time=ts, updated_at=ts)
        self._store.conversations[conversation_id] = updated
        return updated


@dataclass
class FakeMessageReader:
    _store: InMemoryStore

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return next((m for m in self._store.messages if m.id == message_id), None)

    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        # stable sort keeps insertion order for equal timestamps
        return sorted(
            (m for m in self._store.messages if m.conversation_id == conversation_id),
            key=lambda m: m.created_at,
        )


@dataclass
class FakeMessageWriter:
    _store: InMemoryStore

    async def create(self, message: Message) -> Message:
        self._store.messages.append(message)
        return message

    async def mark_read(self, message_id: UUID, reader_id: UUID, ts: datetime) -> Message | None:
        for i, m in enumerate(self._store.messages):
            if m.id == message_id and m.sender_id != reader_id and m.read_at is None:
                updated = replace(m, read_at=ts, updated_at=ts)
                self._store.messages[i] = updated
                return updated
        return None


@dataclass
class FakeTypingReader:
    _store: InMemoryStore

    async def list_for_conversation(self, conversation_id: UUID) -> list[TypingIndicator]:
        return [t for (cid, _), t in self._store.typing.items() if cid == conversation_id]


@dataclass
class FakeTypingWriter:
    _store: InMemoryStore

    async def upsert(self, conversation_id: UUID, user_id: UUID, is_typing: bool, ts: datetime) -> TypingIndicator:
        indicator = TypingIndicator(conversation_id, user_id, is_typing, ts)
        self._store.typing[(conversation_id, user_id)] = indicator
        return indicator


@dataclass
class FakeOutboxWriter:
    staged: list[ChangeEvent] = field(default_factory=list)
    pending: list[OutboxRecord] = field(default_factory=list)
    sent: list[int] = field(default_factory=list)
    failed: list[tuple[int, str | None]] = field(default_factory=list)
    dead: list[int] = field(default_factory=list)

    async def add(self, event: ChangeEvent) -> None:
        self.staged.append(event)

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        batch, self.pending = self.pending[:batch_size], self.pending[batch_size:]
        return batch

    async def mark_sent(self, ids: list[int]) -> None:
        self.sent.extend(ids)

    async def mark_failed(self, record_id: int, next_retry_at: datetime, error: str | None = None) -> None:
        self.failed.append((record_id, error))

    async def mark_dead(self, record_id: int, error: str | None = None) -> None:
        self.dead.append(record_id)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests.

    Writes land in the shared store immediately; staged change events are
    delivered to the feed on commit and dropped on rollback.
    """

    store: InMemoryStore = field(default_factory=InMemoryStore)
    feed: FakeChangeFeed | None = None
    outbox: FakeOutboxWriter = field(default_factory=FakeOutboxWriter)
    commits: int = 0

    def __post_init__(self) -> None:
        self.profiles = FakeProfileReader(self.store)
        self.profiles_w = FakeProfileWriter(self.store)
        self.conversations = FakeConversationReader(self.store)
        self.conversations_w = FakeConversationWriter(self.store)
        self.messages = FakeMessageReader(self.store)
        self.messages_w = FakeMessageWriter(self.store)
        self.typing = FakeTypingReader(self.store)
        self.typing_w = FakeTypingWriter(self.store)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1
        events, self.outbox.staged = self.outbox.staged, []
        if self.feed is not None:
            for event in events:
                await self.feed.publish(event)

    async def rollback(self) -> None:
        self.outbox.staged.clear()

    async def __aenter__(self) -> FakeUoW:
        if self.store.unavailable:
            raise TransientStoreError("store unavailable")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()


@dataclass
class FakeUoWFactory:
    store: InMemoryStore
    feed: FakeChangeFeed

    def __call__(self) -> FakeUoW:
        return FakeUoW(self.store, self.feed)


# --- builders -----------------------------------------------------------


def make_profile(username: str = "alice", *, user_id: UUID | None = None, email: str | None = None) -> Profile:
    return Profile(
        id=user_id or uuid.uuid4(),
        username=username,
        avatar_url=None,
        email=email if email is not None else f"{username}@example.com",
        is_online=False,
        last_seen=T0,
        created_at=T0,
        updated_at=T0,
    )


def make_conversation(
    user1_id: UUID | None = None,
    user2_id: UUID | None = None,
    *,
    last_message_time: datetime | None = None,
    updated_at: datetime = T0,
    content: str | None = None,
) -> Conversation:
    return Conversation(
        id=uuid.uuid4(),
        user1_id=user1_id or uuid.uuid4(),
        user2_id=user2_id or uuid.uuid4(),
        last_message_content=content if content is not None else ("hi" if last_message_time else None),
        last_message_time=last_message_time,
        created_at=T0,
        updated_at=updated_at,
    )


def make_message(
    conversation_id: UUID,
    sender_id: UUID,
    content: str = "hello",
    *,
    created_at: datetime = T0,
    read_at: datetime | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        read_at=read_at,
        created_at=created_at,
        updated_at=created_at,
    )


# --- fixtures -----------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def feed() -> FakeChangeFeed:
    return FakeChangeFeed()


@pytest.fixture
def uow_factory(store: InMemoryStore, feed: FakeChangeFeed) -> FakeUoWFactory:
    return FakeUoWFactory(store, feed)


@pytest.fixture
def uow(store: InMemoryStore, feed: FakeChangeFeed) -> FakeUoW:
    return FakeUoW(store, feed)


@pytest.fixture
def alice(store: InMemoryStore) -> Profile:
    profile = make_profile("alice")
    store.profiles[profile.id] = profile
    return profile


@pytest.fixture
def bob(store: InMemoryStore) -> Profile:
    profile = make_profile("bob")
    store.profiles[profile.id] = profile
    return profile


@pytest.fixture
def carol(store: InMemoryStore) -> Profile:
    profile = make_profile("carol")
    store.profiles[profile.id] = profile
    return profile


@pytest.fixture
def conversation(store: InMemoryStore, alice: Profile, bob: Profile) -> Conversation:
    conv = make_conversation(alice.id, bob.id)
    store.conversations[conv.id] = conv
    return conv


@pytest.fixture
def alice_principal(alice: Profile) -> Principal:
    return Principal(user_id=alice.id)
