"""Models for chats and their persisted participant lists."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nyx_server.db.session import Base
from nyx_server.db.time import utcnow

CHAT_TYPE_PRIVATE = "private"
CHAT_TYPE_GROUP = "group"


class Chat(Base):
    """A private (two-party) or group conversation."""

    __tablename__ = "chats"
    __table_args__ = (
        CheckConstraint("type IN ('private', 'group')", name="ck_chats_type"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Sorted "userA|userB" for private chats; the unique index makes the
    # store reject a second private chat for the same unordered pair.
    pair_key: Mapped[str | None] = mapped_column(String(80), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    participants: Mapped[list[ChatParticipant]] = relationship(
        "ChatParticipant",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatParticipant.joined_at",
    )


class ChatParticipant(Base):
    """Append-only membership of a user in a chat."""

    __tablename__ = "chat_participants"

    chat_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("chats.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    chat: Mapped[Chat] = relationship("Chat", back_populates="participants")
