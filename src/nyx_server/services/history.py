"""Paginated message history for a chat."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from nyx_server.core.settings import settings
from nyx_server.db.time import as_utc
from nyx_server.models import Message
from nyx_server.repositories import ChatRepository
from nyx_server.schemas.message import LastMessage, MessageOut


def to_message_out(message: Message) -> MessageOut:
    """Convert a Message ORM instance to its wire schema."""
    return MessageOut(
        id=message.id,
        chat_id=message.chat_id,
        sender_id=message.sender_id,
        content=message.content,
        nonce=message.nonce,
        type=message.message_type,
        reply_to=message.reply_to,
        expires_at=message.expires_at,
        timestamp=message.created_at,
    )


def to_last_message(message: Message) -> LastMessage:
    """Convert a Message ORM instance to a chat-list preview."""
    return LastMessage(
        id=message.id,
        sender_id=message.sender_id,
        content=message.content,
        type=message.message_type,
        timestamp=message.created_at,
    )


def clamp_limit(limit: int | None) -> int:
    """Apply the default page size and the configured hard cap."""
    if limit is None:
        return settings.history_default_limit
    return max(1, min(limit, settings.history_max_limit))


def list_history(
    db: Session,
    chat_id: str,
    limit: int | None = None,
    before: datetime | None = None,
) -> list[MessageOut]:
    """Return up to ``limit`` messages of a chat in ascending timestamp order.

    Args:
        db: Database session.
        chat_id: Chat to read. Unknown chats yield an empty list.
        limit: Page size; defaults to 50 and is capped at the configured maximum.
        before: When given, only messages created strictly earlier are returned;
            otherwise the most recent page.
    """
    cutoff = as_utc(before) if before is not None else None
    rows = ChatRepository(db).list_messages(chat_id, clamp_limit(limit), cutoff)
    return [to_message_out(row) for row in rows]
