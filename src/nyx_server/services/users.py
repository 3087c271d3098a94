"""Registration, login sessions and profile helpers for users."""
from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nyx_server.core import security
from nyx_server.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from nyx_server.core.settings import settings
from nyx_server.db.time import as_utc, utcnow
from nyx_server.models import AuthSession, User
from nyx_server.repositories import UserRepository
from nyx_server.schemas.user import LoginRequest, ProfileUpdateRequest, RegisterRequest
from nyx_server.services.ids import generate_session_id, generate_user_id

__all__ = [
    "register_user",
    "login_user",
    "logout_session",
    "verify_session_token",
    "get_profile",
    "search_users",
    "update_profile",
]

logger = logging.getLogger(__name__)

_NON_NULLABLE_PROFILE_FIELDS = {"nickname", "allow_search_by_nickname"}
_ID_ATTEMPTS = 5


def _open_session(repo: UserRepository, user_id: str) -> str:
    """Persist a session row for ``user_id`` and return a token bound to it."""
    now = utcnow()
    auth_session = AuthSession(
        id=generate_session_id(),
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.access_token_expire_minutes),
    )
    repo.add_session(auth_session)
    return security.create_access_token(user_id, auth_session.id)


def _new_user_id(repo: UserRepository) -> str:
    for _ in range(_ID_ATTEMPTS):
        candidate = generate_user_id()
        if not repo.exists(candidate):
            return candidate
    raise ConflictError("Could not allocate a user id")


def register_user(db: Session, request: RegisterRequest) -> tuple[User, str]:
    """Create a user and its first login session.

    Returns:
        The new user and a bearer token.

    Raises:
        ValidationError: If the public key is not a base64 SPKI key.
        ConflictError: If the id or nickname is already taken.
    """
    public_key = security.validate_public_key(request.public_key)
    repo = UserRepository(db)

    user_id = request.id or _new_user_id(repo)
    if repo.exists(user_id):
        raise ConflictError("User id already registered")
    if repo.nickname_taken(request.nickname):
        raise ConflictError("Nickname already taken")

    user = User(id=user_id, nickname=request.nickname, public_key=public_key, created_at=utcnow())
    try:
        repo.add(user)
        token = _open_session(repo, user.id)
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise ConflictError("User id or nickname already registered") from err

    logger.info("Registered user %s", user.id)
    return user, token


def login_user(db: Session, request: LoginRequest) -> tuple[User, str]:
    """Start a new session for an existing identity."""
    repo = UserRepository(db)
    user = repo.get(request.id)
    if user is None:
        raise NotFoundError("User not found")
    if user.public_key != request.public_key:
        raise AuthenticationError("Public key does not match")

    token = _open_session(repo, user.id)
    db.commit()
    logger.info("User %s logged in", user.id)
    return user, token


def logout_session(db: Session, token: str | None) -> bool:
    """Delete the session named by ``token``; invalid tokens are ignored."""
    if not token:
        return False
    try:
        payload = security.decode_access_token(token)
    except AuthenticationError:
        return False
    session_id = payload.get("sid")
    if not session_id:
        return False
    deleted = UserRepository(db).delete_session(session_id)
    db.commit()
    return deleted


def verify_session_token(db: Session, token: str, user_id: str | None = None) -> str:
    """Return the user id of a valid token backed by a live session row.

    Raises:
        AuthenticationError: If the token is invalid, its session was closed
            or expired, or it belongs to a different user than ``user_id``.
    """
    payload = security.decode_access_token(token)
    subject = str(payload["sub"])
    if user_id is not None and subject != user_id:
        raise AuthenticationError("Token does not belong to this user")

    session_id = payload.get("sid")
    auth_session = UserRepository(db).get_session(session_id) if session_id else None
    if auth_session is None or auth_session.user_id != subject:
        raise AuthenticationError("Session is no longer valid")
    if as_utc(auth_session.expires_at) <= utcnow():
        raise AuthenticationError("Session has expired")
    return subject


def get_profile(db: Session, user_id: str) -> User:
    """Return a user or raise NotFoundError."""
    user = UserRepository(db).get(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def search_users(db: Session, query: str) -> list[User]:
    """Return searchable users whose nickname contains ``query``."""
    query = query.strip()
    if len(query) < settings.user_search_min_length:
        raise ValidationError(
            f"Search query must be at least {settings.user_search_min_length} characters"
        )
    return UserRepository(db).search(query, settings.user_search_limit)


def update_profile(db: Session, user_id: str, update: ProfileUpdateRequest) -> User:
    """Apply a partial profile update."""
    repo = UserRepository(db)
    user = repo.get(user_id)
    if user is None:
        raise NotFoundError("User not found")

    changes = {
        key: value
        for key, value in update.model_dump(exclude_unset=True).items()
        if value is not None or key not in _NON_NULLABLE_PROFILE_FIELDS
    }
    if not changes:
        raise ValidationError("No fields to update")

    nickname = changes.get("nickname")
    if nickname is not None and repo.nickname_taken(nickname, exclude_id=user_id):
        raise ConflictError("Nickname already taken")

    for key, value in changes.items():
        setattr(user, key, value)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise ConflictError("Nickname already taken") from err
    return user
