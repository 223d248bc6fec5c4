"""Import all models so Alembic can discover them via Base.metadata."""
from direct_chat.infrastructure.db.models.conversation import ConversationModel
from direct_chat.infrastructure.db.models.message import MessageModel
from direct_chat.infrastructure.db.models.outbox import OutboxMessageModel
from direct_chat.infrastructure.db.models.profile import ProfileModel
from direct_chat.infrastructure.db.models.typing_indicator import TypingIndicatorModel

__all__ = [
    "ConversationModel",
    "MessageModel",
    "OutboxMessageModel",
    "ProfileModel",
    "TypingIndicatorModel",
]
