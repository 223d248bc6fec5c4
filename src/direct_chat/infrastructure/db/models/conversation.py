from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from direct_chat.infrastructure.db.base import Base


class ConversationModel(Base):
    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    user1_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False,
    )
    user2_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False,
    )
    # canonical (min, max) copy of the participants; the unique key for the pair
    pair_low: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    pair_high: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    last_message_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_time: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
        onupdate=text("now()"),
    )

    messages = relationship("MessageModel", back_populates="conversation", lazy="noload")

    __table_args__ = (
        UniqueConstraint("pair_low", "pair_high", name="uq_conversation_pair"),
        CheckConstraint("user1_id <> user2_id", name="ck_conversations_distinct_users"),
        Index("ix_conversations_user1", "user1_id"),
        Index("ix_conversations_user2", "user2_id"),
    )
