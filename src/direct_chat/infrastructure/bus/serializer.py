from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from direct_chat.domain.events.change import ChangeEvent, parse_topic


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def to_jsonable(row: dict[str, Any]) -> dict[str, Any]:
    return json.loads(json.dumps(row, cls=_Encoder))


def serialize_event(event: ChangeEvent) -> str:
    envelope = {"event": event.topic, "data": event.new_row}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> ChangeEvent:
    data = json.loads(raw)
    collection, event_type = parse_topic(data["event"])
    return ChangeEvent(collection=collection, event_type=event_type, new_row=data["data"])
