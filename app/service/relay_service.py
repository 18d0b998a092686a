from __future__ import annotations

import time

from ..domain.store import RoomSummary, StoreStats, TokenEntry, TokenStore
from ..domain.validation import ValidationFailed, is_valid_base64, require
from ..logging_conf import get_logger

logger = get_logger("service.relay")

REGISTER_REQUIRED = "userId, room, token are required"
LIST_REQUIRED = "room query parameter is required"
UNREGISTER_REQUIRED = "userId and room are required"
ROOM_NAME_REQUIRED = "room name is required"
INVALID_BASE64 = "token must be valid Base64"


def _validated_register(
    store: TokenStore,
    *,
    user_id: str | None,
    room: str | None,
    token: str | None,
    display_name: str | None,
) -> TokenEntry:
    require(REGISTER_REQUIRED, user_id, room, token)
    if not is_valid_base64(token):  # type: ignore[arg-type]
        raise ValidationFailed(INVALID_BASE64)
    return store.register(user_id, display_name or user_id, token, room)  # type: ignore[arg-type]


# ------------------------
# Use-cases
# ------------------------

def register_token(
    store: TokenStore,
    *,
    user_id: str | None,
    room: str | None,
    token: str | None,
    display_name: str | None = None,
) -> TokenEntry:
    """Register (or overwrite) a user's token in a room.

    Raises:
        ValidationFailed: if a required field is empty or the token is not Base64.
    """
    entry = _validated_register(
        store, user_id=user_id, room=room, token=token, display_name=display_name
    )
    logger.info(
        "token.register",
        extra={"event": "token_register", "user_id": entry.user_id, "room": entry.room},
    )
    return entry


def refresh_token(
    store: TokenStore,
    *,
    user_id: str | None,
    room: str | None,
    token: str | None,
    display_name: str | None = None,
) -> TokenEntry:
    """Re-register to push the expiry out by another TTL."""
    entry = _validated_register(
        store, user_id=user_id, room=room, token=token, display_name=display_name
    )
    logger.info(
        "token.refresh",
        extra={"event": "token_refresh", "user_id": entry.user_id, "room": entry.room},
    )
    return entry


def list_tokens(
    store: TokenStore, *, room: str | None, exclude_user_id: str | None = None
) -> list[TokenEntry]:
    require(LIST_REQUIRED, room)
    return store.get_tokens_in_room(room, exclude_user_id)  # type: ignore[arg-type]


def unregister_token(store: TokenStore, *, user_id: str | None, room: str | None) -> bool:
    require(UNREGISTER_REQUIRED, user_id, room)
    return store.unregister(user_id, room)  # type: ignore[arg-type]


def list_rooms(store: TokenStore) -> list[RoomSummary]:
    return store.get_rooms()


def clear_room(store: TokenStore, *, name: str | None) -> int:
    require(ROOM_NAME_REQUIRED, name)
    return store.clear_room(name)  # type: ignore[arg-type]


def get_stats(store: TokenStore, *, started_at: float) -> tuple[StoreStats, float]:
    """Return store counters plus process uptime in seconds.

    `started_at` is a time.monotonic() reading taken when the app was built.
    """
    return store.get_stats(), time.monotonic() - started_at
