"""User profile, search and presence endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from nyx_server.schemas.user import (
    PresenceResponse,
    ProfileUpdateRequest,
    UserResponse,
    UserSearchResult,
)
from nyx_server.services.users import get_profile, search_users, update_profile

from ..dependencies import HubDep, SessionDep

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search/{query}", response_model=list[UserSearchResult])
async def search(query: str, db: SessionDep) -> list[UserSearchResult]:
    """Find users that opted into nickname search."""
    return [UserSearchResult.model_validate(user) for user in search_users(db, query)]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, db: SessionDep) -> UserResponse:
    return UserResponse.model_validate(get_profile(db, user_id))


@router.patch("/{user_id}", response_model=UserResponse)
async def patch_user(user_id: str, update: ProfileUpdateRequest, db: SessionDep) -> UserResponse:
    """Apply a partial profile update."""
    return UserResponse.model_validate(update_profile(db, user_id, update))


@router.get("/{user_id}/status", response_model=PresenceResponse)
async def get_status(user_id: str, hub: HubDep) -> PresenceResponse:
    """Report whether the user has at least one live connection."""
    return PresenceResponse(user_id=user_id, online=hub.presence.is_online(user_id))
