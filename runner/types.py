from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class PeerToken:
    """Another device's token as fetched from a room."""

    user_id: str
    display_name: str
    token: bytes


class SmokeError(RuntimeError):
    """Raised when the smoke flow cannot proceed (e.g., health never ready)."""


def now_ms() -> int:
    """Return current time in epoch milliseconds."""
    return int(time.time() * 1000)


class NotConfiguredError(SmokeError):
    """Raised when a client call needs a room but none has been joined."""


class RelayServerError(SmokeError):
    """Raised when the relay answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"relay returned {status_code}: {body}")
        self.status_code = status_code


class PeerTimeoutError(SmokeError):
    """Raised when a peer's token never shows up in the room."""
