"""Contact-book Pydantic schemas."""

from pydantic import Field

from nyx_server.schemas.common import CamelModel, UtcDatetime


class ContactCreate(CamelModel):
    """Add ``contact_id`` to the address book of ``owner_id``."""

    owner_id: str = Field(..., min_length=1)
    contact_id: str = Field(..., min_length=1)
    nickname: str | None = Field(None, max_length=64)


class ContactResponse(CamelModel):
    """Saved contact together with the private chat shared with it."""

    user_id: str
    nickname: str
    public_key: str
    avatar: str | None = None
    alias: str | None = None
    chat_id: str | None = None
    added_at: UtcDatetime
