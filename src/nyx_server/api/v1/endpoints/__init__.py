"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .chats import router as chats_router
from .contacts import router as contacts_router
from .realtime import router as realtime_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "chats_router",
    "contacts_router",
    "realtime_router",
    "users_router",
]
