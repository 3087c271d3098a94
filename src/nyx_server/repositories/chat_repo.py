"""Data access helpers for chats, participants and messages."""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session, aliased

from nyx_server.models import CHAT_TYPE_PRIVATE, Chat, ChatParticipant, Message, User

__all__ = ["ChatRepository"]


class ChatRepository:
    """Thin wrapper around database access for chat entities.

    Methods only add and flush; committing is left to the calling service so
    multi-row writes share one transaction.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    # -- chats -------------------------------------------------------------

    def get_chat(self, chat_id: str) -> Chat | None:
        """Return a chat by identifier."""
        return self.session.get(Chat, chat_id)

    def find_private_chat(self, user_a: str, user_b: str) -> Chat | None:
        """Return the private chat shared by exactly these two users, if any."""
        first = aliased(ChatParticipant)
        second = aliased(ChatParticipant)
        stmt = (
            select(Chat)
            .join(first, and_(first.chat_id == Chat.id, first.user_id == user_a))
            .join(second, and_(second.chat_id == Chat.id, second.user_id == user_b))
            .where(Chat.type == CHAT_TYPE_PRIVATE)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def add_chat(self, chat: Chat, participant_ids: Iterable[str]) -> Chat:
        """Insert a chat row and one participant row per member."""
        self.session.add(chat)
        for user_id in participant_ids:
            self.session.add(ChatParticipant(chat_id=chat.id, user_id=user_id))
        self.session.flush()
        return chat

    def chats_for_user(self, user_id: str) -> list[tuple[Chat, ChatParticipant]]:
        """Return the user's chats with their membership row, newest chat first."""
        stmt = (
            select(Chat, ChatParticipant)
            .join(ChatParticipant, ChatParticipant.chat_id == Chat.id)
            .where(ChatParticipant.user_id == user_id)
            .order_by(Chat.created_at.desc(), Chat.id)
        )
        return [(chat, membership) for chat, membership in self.session.execute(stmt).all()]

    # -- participants ------------------------------------------------------

    def chat_ids_for_user(self, user_id: str) -> list[str]:
        """Return the ids of every chat the user persistently belongs to."""
        stmt = select(ChatParticipant.chat_id).where(ChatParticipant.user_id == user_id)
        return list(self.session.execute(stmt).scalars())

    def participant_profiles(self, chat_id: str) -> list[User]:
        """Return the user rows of a chat's members."""
        stmt = (
            select(User)
            .join(ChatParticipant, ChatParticipant.user_id == User.id)
            .where(ChatParticipant.chat_id == chat_id)
            .order_by(ChatParticipant.joined_at, User.id)
        )
        return list(self.session.execute(stmt).scalars())

    def get_membership(self, chat_id: str, user_id: str) -> ChatParticipant | None:
        """Return the participant row for ``user_id`` in ``chat_id``."""
        return self.session.get(ChatParticipant, (chat_id, user_id))

    def is_participant(self, chat_id: str, user_id: str) -> bool:
        """Return True if ``user_id`` is a persisted member of ``chat_id``."""
        return self.get_membership(chat_id, user_id) is not None

    # -- messages ----------------------------------------------------------

    def next_seq(self, chat_id: str) -> int:
        """Return the next per-chat sequence number."""
        stmt = select(func.max(Message.seq)).where(Message.chat_id == chat_id)
        current = self.session.execute(stmt).scalar()
        return int(current or 0) + 1

    def add_message(self, message: Message) -> Message:
        """Insert a message row."""
        self.session.add(message)
        self.session.flush()
        return message

    def get_message(self, message_id: str) -> Message | None:
        """Return a message by identifier."""
        return self.session.get(Message, message_id)

    def list_messages(
        self,
        chat_id: str,
        limit: int,
        before: datetime | None = None,
    ) -> list[Message]:
        """Return up to ``limit`` of the newest messages, oldest first.

        Args:
            chat_id: Chat whose log is scanned.
            limit: Maximum number of rows.
            before: Only messages created strictly earlier are considered.
        """
        stmt = select(Message).where(Message.chat_id == chat_id)
        if before is not None:
            stmt = stmt.where(Message.created_at < before)
        stmt = stmt.order_by(Message.created_at.desc(), Message.seq.desc()).limit(limit)
        rows = list(self.session.execute(stmt).scalars())
        rows.reverse()
        return rows

    def last_message(self, chat_id: str) -> Message | None:
        """Return the newest message of a chat."""
        stmt = (
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.created_at.desc(), Message.seq.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def count_unread(self, chat_id: str, user_id: str, since: datetime | None) -> int:
        """Count messages from other members newer than ``since``."""
        stmt = (
            select(func.count())
            .select_from(Message)
            .where(Message.chat_id == chat_id, Message.sender_id != user_id)
        )
        if since is not None:
            stmt = stmt.where(Message.created_at > since)
        return int(self.session.execute(stmt).scalar() or 0)
