"""Data access helpers for users, sessions and contacts."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from nyx_server.models import AuthSession, Contact, User

__all__ = ["UserRepository"]


class UserRepository:
    """Thin wrapper around database access for user entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get(self, user_id: str) -> User | None:
        """Return a user by primary key."""
        return self.session.get(User, user_id)

    def exists(self, user_id: str) -> bool:
        """Return True if a user with ``user_id`` is registered."""
        stmt = select(User.id).where(User.id == user_id)
        return self.session.execute(stmt).first() is not None

    def missing(self, user_ids: list[str]) -> list[str]:
        """Return the subset of ``user_ids`` that are not registered."""
        if not user_ids:
            return []
        stmt = select(User.id).where(User.id.in_(user_ids))
        found = set(self.session.execute(stmt).scalars())
        return [user_id for user_id in user_ids if user_id not in found]

    def nickname_taken(self, nickname: str, exclude_id: str | None = None) -> bool:
        """Return True if another user already uses ``nickname``."""
        stmt = select(User.id).where(User.nickname == nickname)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return self.session.execute(stmt).first() is not None

    def add(self, user: User) -> User:
        """Insert a user row."""
        self.session.add(user)
        self.session.flush()
        return user

    def search(self, query: str, limit: int) -> list[User]:
        """Return searchable users whose nickname contains ``query``."""
        stmt = (
            select(User)
            .where(
                User.allow_search_by_nickname.is_(True),
                User.nickname.contains(query, autoescape=True),
            )
            .order_by(User.nickname)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    # -- sessions ----------------------------------------------------------

    def add_session(self, auth_session: AuthSession) -> AuthSession:
        """Insert a login session row."""
        self.session.add(auth_session)
        self.session.flush()
        return auth_session

    def get_session(self, session_id: str) -> AuthSession | None:
        """Return a login session by identifier."""
        return self.session.get(AuthSession, session_id)

    def delete_session(self, session_id: str) -> bool:
        """Delete a login session; return False if it did not exist."""
        auth_session = self.get_session(session_id)
        if auth_session is None:
            return False
        self.session.delete(auth_session)
        self.session.flush()
        return True

    # -- contacts ----------------------------------------------------------

    def get_contact(self, owner_id: str, contact_id: str) -> Contact | None:
        """Return the address-book entry for ``contact_id`` owned by ``owner_id``."""
        return self.session.get(Contact, (owner_id, contact_id))

    def add_contact(self, contact: Contact) -> Contact:
        """Insert an address-book entry."""
        self.session.add(contact)
        self.session.flush()
        return contact

    def list_contacts(self, owner_id: str) -> list[tuple[Contact, User]]:
        """Return the owner's contacts joined with their profiles."""
        stmt = (
            select(Contact, User)
            .join(User, User.id == Contact.contact_id)
            .where(Contact.owner_id == owner_id)
            .order_by(Contact.added_at, User.nickname)
        )
        return [(contact, user) for contact, user in self.session.execute(stmt).all()]
