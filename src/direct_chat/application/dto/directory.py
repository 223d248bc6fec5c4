from __future__ import annotations

from dataclasses import dataclass

from direct_chat.domain.entities.conversation import Conversation
from direct_chat.domain.entities.profile import Profile


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    """Directory row: a conversation seen from one participant's side."""

    conversation: Conversation
    counterpart: Profile | None
