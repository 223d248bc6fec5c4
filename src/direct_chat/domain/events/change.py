"""Change-feed notification shared by the store adapters and the live views."""
from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from direct_chat.domain.value_objects.enums import ChangeType, Collection


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    collection: Collection
    event_type: ChangeType
    new_row: dict[str, Any] = field(default_factory=dict)

    @property
    def topic(self) -> str:
        return f"{self.collection}.{self.event_type}"

    def matches(self, filters: Mapping[str, Any] | None) -> bool:
        """Equality filter on ``new_row``; values are compared as strings."""
        if not filters:
            return True
        return all(
            str(self.new_row.get(key)) == str(value) for key, value in filters.items()
        )


def row_of(entity: Any) -> dict[str, Any]:
    return dataclasses.asdict(entity)


def parse_topic(topic: str) -> tuple[Collection, ChangeType]:
    collection, _, event_type = topic.rpartition(".")
    return Collection(collection), ChangeType(event_type)
