"""Repository layer wrapping SQLAlchemy queries."""

from .chat_repo import ChatRepository
from .user_repo import UserRepository

__all__ = ["ChatRepository", "UserRepository"]
