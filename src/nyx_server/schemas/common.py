# src/nyx_server/schemas/common.py
"""Shared schema base classes and field types."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from nyx_server.db.time import as_utc

# SQLite hands datetimes back without tzinfo; every stored value is UTC.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class StatusResponse(CamelModel):
    """Generic acknowledgement payload."""

    status: str
