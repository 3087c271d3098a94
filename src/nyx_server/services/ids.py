"""Identifier generators for users, chats, sessions and messages."""

from __future__ import annotations

import secrets
import string
import uuid
from datetime import datetime

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
USER_ID_PREFIX = "NYX-"
USER_ID_LENGTH = 8
MESSAGE_SUFFIX_LENGTH = 9
_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def generate_user_id() -> str:
    """Return a ``NYX-`` identifier with eight base58 characters."""
    suffix = "".join(secrets.choice(BASE58_ALPHABET) for _ in range(USER_ID_LENGTH))
    return f"{USER_ID_PREFIX}{suffix}"


def generate_chat_id() -> str:
    """Return a random UUID4 string for a new chat."""
    return str(uuid.uuid4())


def generate_session_id() -> str:
    """Return a random UUID4 string for a login session."""
    return str(uuid.uuid4())


def generate_message_id(created_at: datetime) -> str:
    """Return ``msg_<epoch millis>_<random base36>``.

    Unique with overwhelming probability without a central counter. The id
    is not an ordering key; ordering uses ``created_at`` and the per-chat
    ``seq``.
    """
    millis = int(created_at.timestamp() * 1000)
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(MESSAGE_SUFFIX_LENGTH))
    return f"msg_{millis}_{suffix}"
