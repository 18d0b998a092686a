from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ..logging_conf import get_logger

__all__ = [
    "TOKEN_TTL",
    "TokenEntry",
    "RoomSummary",
    "StoreStats",
    "TokenStore",
    "utc_now",
]

TOKEN_TTL = timedelta(minutes=30)

logger = get_logger("store")


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class TokenEntry:
    """One user's current handshake token within one room."""

    user_id: str
    display_name: str
    token: str  # Base64, opaque to the server
    room: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass(frozen=True)
class RoomSummary:
    name: str
    user_count: int


@dataclass(frozen=True)
class StoreStats:
    total_tokens: int
    room_count: int


class TokenStore:
    """In-memory registry of (room, user_id) -> TokenEntry with a fixed TTL.

    Expiry is lazy: read operations sweep the whole map before answering, so an
    expired entry is never returned even though nothing deletes it on a timer.
    Rooms are implicit; a room exists only while it holds a live entry.

    All access goes through a single lock, so the store is safe to share
    between request handlers running on worker threads.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = TOKEN_TTL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._tokens: dict[tuple[str, str], TokenEntry] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def register(
        self, user_id: str, display_name: str | None, token: str, room: str
    ) -> TokenEntry:
        """Insert or overwrite the entry for (room, user_id) and reset its TTL."""
        now = self._clock()
        entry = TokenEntry(
            user_id=user_id,
            display_name=display_name or user_id,
            token=token,
            room=room,
            created_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._tokens[(room, user_id)] = entry
        return entry

    def get_tokens_in_room(
        self, room: str, exclude_user_id: str | None = None
    ) -> list[TokenEntry]:
        """Return live entries in `room`, minus `exclude_user_id`'s own entry."""
        with self._lock:
            self._sweep_locked()
            return [
                e
                for e in self._tokens.values()
                if e.room == room and (not exclude_user_id or e.user_id != exclude_user_id)
            ]

    def unregister(self, user_id: str, room: str) -> bool:
        with self._lock:
            deleted = self._tokens.pop((room, user_id), None) is not None
        if deleted:
            logger.info(
                "token.unregistered",
                extra={"event": "token_unregistered", "user_id": user_id, "room": room},
            )
        return deleted

    def clear_room(self, room: str) -> int:
        """Drop every entry in `room`; returns how many were removed."""
        with self._lock:
            keys = [k for k, e in self._tokens.items() if e.room == room]
            for k in keys:
                del self._tokens[k]
        logger.info(
            "room.cleared",
            extra={"event": "room_cleared", "room": room, "removed": len(keys)},
        )
        return len(keys)

    def get_rooms(self) -> list[RoomSummary]:
        with self._lock:
            self._sweep_locked()
            counts: dict[str, int] = {}
            for e in self._tokens.values():
                counts[e.room] = counts.get(e.room, 0) + 1
        return [RoomSummary(name=name, user_count=n) for name, n in counts.items()]

    def get_stats(self) -> StoreStats:
        with self._lock:
            self._sweep_locked()
            rooms = {e.room for e in self._tokens.values()}
            return StoreStats(total_tokens=len(self._tokens), room_count=len(rooms))

    def _sweep_locked(self) -> int:
        # Caller must hold self._lock.
        now = self._clock()
        expired = [k for k, e in self._tokens.items() if e.is_expired(now)]
        for k in expired:
            del self._tokens[k]
        if expired:
            logger.info("store.swept", extra={"event": "store_swept", "removed": len(expired)})
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
