"""Chat and participant lifecycle: creation, listing and read markers."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nyx_server.core.errors import ConflictError, NotFoundError, ValidationError
from nyx_server.db.time import as_utc, utcnow
from nyx_server.models import CHAT_TYPE_GROUP, CHAT_TYPE_PRIVATE, Chat
from nyx_server.repositories import ChatRepository, UserRepository
from nyx_server.schemas.chat import ChatSummary
from nyx_server.services.history import to_last_message
from nyx_server.services.ids import generate_chat_id

logger = logging.getLogger(__name__)


def private_pair_key(user_a: str, user_b: str) -> str:
    """Return the order-independent key identifying a private chat."""
    first, second = sorted((user_a, user_b))
    return f"{first}|{second}"


def create_private_chat(db: Session, user_a: str, user_b: str) -> tuple[Chat, bool]:
    """Find or create the private chat of two users.

    Args:
        db: Database session.
        user_a: One participant.
        user_b: The other participant; argument order does not matter.

    Returns:
        The chat and True when it already existed.

    Raises:
        ValidationError: If both ids are the same user.
        NotFoundError: If either user is not registered.
    """
    if user_a == user_b:
        raise ValidationError("A private chat needs two distinct users")

    missing = UserRepository(db).missing([user_a, user_b])
    if missing:
        raise NotFoundError(f"Unknown user: {missing[0]}")

    repo = ChatRepository(db)
    existing = repo.find_private_chat(user_a, user_b)
    if existing is not None:
        return existing, True

    chat = Chat(
        id=generate_chat_id(),
        type=CHAT_TYPE_PRIVATE,
        pair_key=private_pair_key(user_a, user_b),
        created_at=utcnow(),
    )
    try:
        repo.add_chat(chat, [user_a, user_b])
        db.commit()
    except IntegrityError:
        # Another request created the pair between our lookup and insert.
        db.rollback()
        existing = repo.find_private_chat(user_a, user_b)
        if existing is None:
            raise
        return existing, True

    logger.info("Created private chat %s", chat.id)
    return chat, False


def create_group_chat(
    db: Session,
    name: str,
    creator_id: str,
    participant_ids: list[str],
) -> tuple[Chat, list[str]]:
    """Create a group chat with the creator and the given members.

    All rows are written in one transaction. Duplicate ids are collapsed and
    the creator is always the first member.

    Raises:
        ValidationError: If the name is blank.
        NotFoundError: If any member is not registered.
    """
    if not name.strip():
        raise ValidationError("Group name is required")

    members = list(dict.fromkeys([creator_id, *participant_ids]))
    missing = UserRepository(db).missing(members)
    if missing:
        raise NotFoundError(f"Unknown user: {missing[0]}")

    chat = Chat(id=generate_chat_id(), type=CHAT_TYPE_GROUP, name=name.strip(), created_at=utcnow())
    try:
        ChatRepository(db).add_chat(chat, members)
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise ConflictError("Group chat could not be created") from err

    logger.info("Created group chat %s with %d members", chat.id, len(members))
    return chat, members


def list_user_chats(db: Session, user_id: str) -> list[ChatSummary]:
    """Return the user's chats, newest first, with unread count and last message."""
    repo = ChatRepository(db)
    summaries: list[ChatSummary] = []
    for chat, membership in repo.chats_for_user(user_id):
        profiles = repo.participant_profiles(chat.id)
        name = chat.name
        if chat.type == CHAT_TYPE_PRIVATE and not name:
            other = next((user for user in profiles if user.id != user_id), None)
            name = other.nickname if other is not None else None

        since = as_utc(membership.last_read_at) if membership.last_read_at else None
        last = repo.last_message(chat.id)
        summaries.append(
            ChatSummary(
                id=chat.id,
                type=chat.type,
                name=name,
                avatar=chat.avatar,
                participants=[user.id for user in profiles],
                unread_count=repo.count_unread(chat.id, user_id, since),
                last_message=to_last_message(last) if last is not None else None,
                created_at=chat.created_at,
            )
        )
    return summaries


def mark_read(db: Session, chat_id: str, user_id: str) -> None:
    """Advance the participant's read marker to now.

    Raises:
        NotFoundError: If the user is not a participant of the chat.
    """
    repo = ChatRepository(db)
    membership = repo.get_membership(chat_id, user_id)
    if membership is None:
        raise NotFoundError("Chat membership not found")
    membership.last_read_at = utcnow()
    db.commit()
