from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def to_iso_z(dt: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with milliseconds and a Z suffix."""
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterTokenRequest(CamelModel):
    """Body for POST /ni/token and /ni/token/refresh.

    Every field is optional at parse time so that missing values surface as
    a validation_error from the service layer rather than a schema error.
    """
    user_id: Optional[str] = None
    display_name: Optional[str] = None
    room: Optional[str] = None
    token: Optional[str] = None


class RegisterTokenResponse(CamelModel):
    success: bool = True
    user_id: str
    room: str
    expires_at: str


class RefreshTokenResponse(CamelModel):
    success: bool = True
    expires_at: str


class TokenItem(CamelModel):
    """A peer's token as handed back to a polling device."""
    user_id: str
    display_name: str
    token: str


class TokenListResponse(CamelModel):
    tokens: list[TokenItem]


class UnregisterResponse(CamelModel):
    success: bool = True
    deleted: bool


class RoomItem(CamelModel):
    name: str
    user_count: int


class RoomListResponse(CamelModel):
    rooms: list[RoomItem]


class ClearRoomResponse(CamelModel):
    success: bool = True
    deleted_tokens: int


class HealthResponse(CamelModel):
    name: str
    version: str
    status: str = "running"


class StatsResponse(CamelModel):
    total_tokens: int
    room_count: int
    uptime: float


class ErrorResponse(BaseModel):
    """Error body shared by every non-2xx response."""
    error: str
    message: str
