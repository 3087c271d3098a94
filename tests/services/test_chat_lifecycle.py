"""Tests for chat creation, listing and read markers."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from nyx_server.core.errors import NotFoundError, ValidationError
from nyx_server.db.time import utcnow
from nyx_server.models import Chat, ChatParticipant, Message
from nyx_server.services.chats import (
    create_group_chat,
    create_private_chat,
    list_user_chats,
    mark_read,
    private_pair_key,
)


def test_private_chat_creation_is_idempotent(db_session, alice, bob) -> None:
    """The same unordered pair always maps to one chat."""
    chat, existing = create_private_chat(db_session, alice.id, bob.id)
    again, existing_again = create_private_chat(db_session, bob.id, alice.id)

    assert existing is False
    assert existing_again is True
    assert again.id == chat.id
    assert chat.pair_key == private_pair_key(bob.id, alice.id)
    participants = db_session.execute(
        select(func.count()).select_from(ChatParticipant).where(ChatParticipant.chat_id == chat.id)
    ).scalar()
    assert participants == 2


def test_private_chat_requires_distinct_known_users(db_session, alice) -> None:
    with pytest.raises(ValidationError):
        create_private_chat(db_session, alice.id, alice.id)
    with pytest.raises(NotFoundError):
        create_private_chat(db_session, alice.id, "NYX-ZZZZZZZZ")


def test_private_chat_recovers_from_concurrent_insert(db_session, alice, bob, mocker) -> None:
    """A unique pair_key violation resolves to the chat the other writer created."""
    chat, _ = create_private_chat(db_session, alice.id, bob.id)
    lookup = mocker.patch(
        "nyx_server.services.chats.ChatRepository.find_private_chat",
        side_effect=[None, chat],
    )

    found, existing = create_private_chat(db_session, alice.id, bob.id)

    assert existing is True
    assert found.id == chat.id
    assert lookup.call_count == 2
    assert db_session.execute(select(func.count()).select_from(Chat)).scalar() == 1


def test_group_chat_includes_creator_once(db_session, alice, bob, carol) -> None:
    chat, members = create_group_chat(db_session, "Team", alice.id, [bob.id, alice.id, carol.id, bob.id])

    assert members == [alice.id, bob.id, carol.id]
    assert chat.type == "group"
    stored = db_session.execute(
        select(ChatParticipant.user_id).where(ChatParticipant.chat_id == chat.id)
    ).scalars().all()
    assert sorted(stored) == sorted(members)


def test_group_chat_with_unknown_member_writes_nothing(db_session, alice) -> None:
    with pytest.raises(NotFoundError):
        create_group_chat(db_session, "Team", alice.id, ["NYX-ZZZZZZZZ"])

    assert db_session.execute(select(func.count()).select_from(Chat)).scalar() == 0


def test_list_user_chats_reports_unread_and_last_message(db_session, alice, bob) -> None:
    chat, _ = create_private_chat(db_session, alice.id, bob.id)
    now = utcnow()
    db_session.add_all(
        [
            Message(id="m1", chat_id=chat.id, sender_id=bob.id, seq=1, content="hi", created_at=now),
            Message(
                id="m2",
                chat_id=chat.id,
                sender_id=alice.id,
                seq=2,
                content="hey",
                created_at=now + timedelta(seconds=1),
            ),
            Message(
                id="m3",
                chat_id=chat.id,
                sender_id=bob.id,
                seq=3,
                content="news?",
                created_at=now + timedelta(seconds=2),
            ),
        ]
    )
    db_session.commit()

    [summary] = list_user_chats(db_session, alice.id)

    assert summary.id == chat.id
    assert summary.type == "private"
    assert summary.name == "bob"
    assert sorted(summary.participants) == sorted([alice.id, bob.id])
    assert summary.unread_count == 2
    assert summary.last_message is not None
    assert summary.last_message.id == "m3"


def test_mark_read_resets_unread_count(db_session, alice, bob) -> None:
    chat, _ = create_private_chat(db_session, alice.id, bob.id)
    db_session.add(
        Message(
            id="m1",
            chat_id=chat.id,
            sender_id=bob.id,
            seq=1,
            content="hi",
            created_at=utcnow() - timedelta(seconds=5),
        )
    )
    db_session.commit()

    mark_read(db_session, chat.id, alice.id)

    [summary] = list_user_chats(db_session, alice.id)
    assert summary.unread_count == 0


def test_mark_read_requires_membership(db_session, alice, carol) -> None:
    chat, _ = create_group_chat(db_session, "Solo", alice.id, [])
    with pytest.raises(NotFoundError):
        mark_read(db_session, chat.id, carol.id)
