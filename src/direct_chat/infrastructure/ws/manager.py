"""In-process WebSocket connection manager.

Each socket holds a set of topics. A topic is a collection, optionally
narrowed to one conversation; change events are pushed to every socket
holding a topic that matches.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import WebSocket

from direct_chat.domain.events.change import ChangeEvent
from direct_chat.domain.value_objects.enums import Collection
from direct_chat.infrastructure.bus.serializer import to_jsonable
from direct_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Topic:
    collection: Collection
    conversation_id: UUID | None = None

    def matches(self, event: ChangeEvent, user_id: UUID) -> bool:
        if event.collection != self.collection:
            return False
        row = event.new_row
        if self.collection == Collection.PROFILES:
            return True
        if self.collection == Collection.CONVERSATIONS:
            if self.conversation_id is not None:
                return str(row.get("id")) == str(self.conversation_id)
            return str(user_id) in (str(row.get("user1_id")), str(row.get("user2_id")))
        return (
            self.conversation_id is not None
            and str(row.get("conversation_id")) == str(self.conversation_id)
        )


class ConnectionManager:
    """Tracks WebSocket connections per principal and their topics."""

    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = {}
        self._owners: dict[WebSocket, UUID] = {}
        self._topics: dict[WebSocket, set[Topic]] = {}

    async def connect(self, ws: WebSocket, principal_key: str, user_id: UUID) -> None:
        await ws.accept()
        self._connections.setdefault(principal_key, set()).add(ws)
        self._owners[ws] = user_id
        self._topics[ws] = set()
        logger.debug("WS connected: %s (total=%d)", principal_key, len(self._connections))

    def disconnect(self, ws: WebSocket, principal_key: str) -> None:
        conns = self._connections.get(principal_key)
        if conns:
            conns.discard(ws)
            if not conns:
                del self._connections[principal_key]
        self._owners.pop(ws, None)
        self._topics.pop(ws, None)
        logger.debug("WS disconnected: %s", principal_key)

    def subscribe(self, ws: WebSocket, topic: Topic) -> None:
        self._topics.setdefault(ws, set()).add(topic)

    def unsubscribe(self, ws: WebSocket, topic: Topic) -> None:
        topics = self._topics.get(ws)
        if topics:
            topics.discard(topic)

    def topics_of(self, ws: WebSocket) -> frozenset[Topic]:
        return frozenset(self._topics.get(ws, ()))

    def recipients(self, event: ChangeEvent) -> list[WebSocket]:
        return [
            ws for ws, topics in self._topics.items()
            if any(t.matches(event, self._owners[ws]) for t in topics)
        ]

    async def dispatch(self, event: ChangeEvent) -> None:
        """Push one change event to every socket whose topics match it."""
        targets = self.recipients(event)
        if not targets:
            return
        raw = WsOutbound(
            type="change",
            data={
                "collection": str(event.collection),
                "event_type": str(event.event_type),
                "new_row": to_jsonable(event.new_row),
            },
        ).model_dump_json()
        dead: list[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_text(raw)
            except Exception:
                dead.append(ws)
        for ws in dead:
            owner = self._owners.get(ws)
            if owner is not None:
                self.disconnect(ws, f"user:{owner}")
