from __future__ import annotations

from enum import StrEnum


class Collection(StrEnum):
    PROFILES = "profiles"
    CONVERSATIONS = "conversations"
    MESSAGES = "messages"
    TYPING_INDICATORS = "typing_indicators"


class ChangeType(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
