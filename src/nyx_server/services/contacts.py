"""Address-book helpers."""
from __future__ import annotations

from sqlalchemy.orm import Session

from nyx_server.core.errors import NotFoundError, ValidationError
from nyx_server.db.time import utcnow
from nyx_server.models import Chat, Contact, User
from nyx_server.repositories import ChatRepository, UserRepository
from nyx_server.schemas.contact import ContactResponse
from nyx_server.services.chats import create_private_chat


def add_contact(
    db: Session,
    owner_id: str,
    contact_id: str,
    nickname: str | None = None,
) -> tuple[ContactResponse, Chat, bool]:
    """Save ``contact_id`` in the owner's address book and open their private chat.

    Adding an existing contact is a no-op apart from updating the alias when
    one is given.

    Returns:
        The contact entry, the private chat and whether that chat already existed.
    """
    if owner_id == contact_id:
        raise ValidationError("Cannot add yourself as a contact")

    users = UserRepository(db)
    profile = users.get(contact_id)
    if profile is None:
        raise NotFoundError("User not found")
    chat, existing = create_private_chat(db, owner_id, contact_id)

    contact = users.get_contact(owner_id, contact_id)
    if contact is None:
        contact = users.add_contact(
            Contact(owner_id=owner_id, contact_id=contact_id, nickname=nickname, added_at=utcnow())
        )
    elif nickname is not None:
        contact.nickname = nickname
    db.commit()

    return _to_contact_response(contact, profile, chat.id), chat, existing


def list_contacts(db: Session, owner_id: str) -> list[ContactResponse]:
    """Return the owner's contacts with their profiles and private chat ids.

    Read-only: a contact whose private chat no longer exists is listed with
    ``chat_id`` None.
    """
    users = UserRepository(db)
    if not users.exists(owner_id):
        raise NotFoundError("User not found")

    chats = ChatRepository(db)
    results: list[ContactResponse] = []
    for contact, profile in users.list_contacts(owner_id):
        chat = chats.find_private_chat(owner_id, profile.id)
        results.append(_to_contact_response(contact, profile, chat.id if chat else None))
    return results


def _to_contact_response(contact: Contact, profile: User, chat_id: str | None) -> ContactResponse:
    return ContactResponse(
        user_id=profile.id,
        nickname=profile.nickname,
        public_key=profile.public_key,
        avatar=profile.avatar,
        alias=contact.nickname,
        chat_id=chat_id,
        added_at=contact.added_at,
    )
