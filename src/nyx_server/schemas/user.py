"""User- and authentication-related Pydantic schemas."""

from pydantic import Field

from nyx_server.schemas.common import CamelModel, UtcDatetime

USER_ID_PATTERN = r"^NYX-[1-9A-HJ-NP-Za-km-z]{8}$"


class RegisterRequest(CamelModel):
    """Schema for registering a new identity.

    ``id`` is normally generated on the client; when omitted the server
    generates one.
    """

    id: str | None = Field(None, pattern=USER_ID_PATTERN, description="NYX-XXXXXXXX identifier")
    nickname: str = Field(..., min_length=1, max_length=64)
    public_key: str = Field(..., min_length=1, description="Base64 SPKI public key")


class LoginRequest(CamelModel):
    """Schema for reconnecting with an existing identity."""

    id: str = Field(..., pattern=USER_ID_PATTERN)
    public_key: str = Field(..., min_length=1)


class UserResponse(CamelModel):
    """Public profile of a user."""

    id: str
    nickname: str
    public_key: str
    avatar: str | None = None
    allow_search_by_nickname: bool = False
    auto_delete_messages: int | None = None
    created_at: UtcDatetime


class AuthResponse(CamelModel):
    """Registration/login response carrying the profile and a bearer token."""

    user: UserResponse
    token: str
    token_type: str = "bearer"


class UserSearchResult(CamelModel):
    """Minimal fields returned by nickname search."""

    id: str
    nickname: str
    avatar: str | None = None


class ProfileUpdateRequest(CamelModel):
    """Partial profile update; unset fields are left untouched."""

    nickname: str | None = Field(None, min_length=1, max_length=64)
    avatar: str | None = None
    allow_search_by_nickname: bool | None = None
    auto_delete_messages: int | None = Field(None, ge=1)


class PresenceResponse(CamelModel):
    """Online status derived from live connections."""

    user_id: str
    online: bool
