"""Models describing messages posted to chats."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from nyx_server.db.session import Base
from nyx_server.db.time import utcnow

MESSAGE_TYPES = ("text", "image", "audio")


class Message(Base):
    """Immutable message in a chat.

    ``created_at`` is assigned by the server and is the ordering key;
    ``seq`` is a per-chat counter that breaks timestamp ties in insertion
    order. Content is stored as sent: the ``encrypted_content``/``nonce``
    column names are kept for clients that encrypt, but the server never
    inspects them.
    """

    __tablename__ = "messages"
    __table_args__ = (
        UniqueConstraint("chat_id", "seq", name="uq_messages_chat_seq"),
        Index("ix_messages_chat_created", "chat_id", "created_at"),
        CheckConstraint(
            "message_type IN ('text', 'image', 'audio')",
            name="ck_messages_type",
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    chat_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    content: Mapped[str] = mapped_column("encrypted_content", Text, nullable=False)
    nonce: Mapped[str] = mapped_column(Text, nullable=False, default="")
    message_type: Mapped[str] = mapped_column(String(16), nullable=False, default="text")
    reply_to: Mapped[str | None] = mapped_column(String(64), nullable=True)

    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
