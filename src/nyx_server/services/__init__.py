"""Business logic services for the Nyx server."""

from .delivery import MessagePipeline
from .presence import PresenceRegistry
from .rooms import RoomMembershipManager

__all__ = [
    "MessagePipeline",
    "PresenceRegistry",
    "RoomMembershipManager",
]
