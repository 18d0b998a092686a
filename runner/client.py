from __future__ import annotations

import asyncio
import base64
import binascii
import time
from datetime import UTC, datetime
from urllib.parse import quote

import httpx

from app.logging_conf import get_logger
from runner.types import (
    NotConfiguredError,
    PeerTimeoutError,
    PeerToken,
    RelayServerError,
    SmokeError,
)

logger = get_logger("runner.client")


async def wait_for_health(
    base_url: str, timeout_s: float = 20.0, *, transport: httpx.AsyncBaseTransport | None = None
) -> None:
    """Ping GET / until it reports status "running" or raise after a timeout."""
    deadline = time.monotonic() + timeout_s
    async with httpx.AsyncClient(base_url=base_url, timeout=5.0, transport=transport) as client:
        while time.monotonic() < deadline:
            try:
                r = await client.get("/")
                if r.status_code == 200 and r.json().get("status") == "running":
                    logger.info("health.ok", extra={"event": "health_ok"})
                    return
            except httpx.HTTPError:
                pass
            await asyncio.sleep(0.25)
    raise SmokeError("Health check did not pass within timeout")


class RelayClient:
    """Plays one device talking to the relay.

    Mirrors what the phone does: join a room, publish its token, poll the room
    for everyone else's, and unregister on the way out.

    Usage:
        async with RelayClient("http://127.0.0.1:3000", "alice") as c:
            c.join_room("demo")
            await c.register_token(b"...")
            peers = await c.fetch_tokens()
    """

    def __init__(
        self,
        base_url: str,
        user_id: str,
        display_name: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.user_id = user_id
        self.display_name = display_name
        self.current_room: str | None = None
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> RelayClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def join_room(self, room: str) -> None:
        self.current_room = room

    def leave_room(self) -> None:
        self.current_room = None

    def _room(self) -> str:
        if not self.current_room:
            raise NotConfiguredError("join a room before talking to the relay")
        return self.current_room

    @staticmethod
    def _check(r: httpx.Response) -> httpx.Response:
        if not r.is_success:
            raise RelayServerError(r.status_code, r.text)
        return r

    def _register_body(self, token: bytes) -> dict:
        return {
            "userId": self.user_id,
            "displayName": self.display_name or self.user_id,
            "room": self._room(),
            "token": base64.b64encode(token).decode("ascii"),
            "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
        }

    async def register_token(self, token: bytes) -> str:
        """Publish our token to the current room; returns the server's expiresAt."""
        r = self._check(await self._http.post("/ni/token", json=self._register_body(token)))
        logger.info(
            "token.registered",
            extra={"event": "client_registered", "user_id": self.user_id, "room": self.current_room},
        )
        return r.json()["expiresAt"]

    async def refresh_token(self, token: bytes) -> str:
        r = self._check(
            await self._http.post("/ni/token/refresh", json=self._register_body(token))
        )
        return r.json()["expiresAt"]

    async def fetch_tokens(self) -> list[PeerToken]:
        """Return every other device's token in the room.

        Items whose token does not decode as Base64 are skipped.
        """
        params = {"room": self._room(), "excludeUserId": self.user_id}
        r = self._check(await self._http.get("/ni/token", params=params))
        peers: list[PeerToken] = []
        for item in r.json()["tokens"]:
            try:
                raw = base64.b64decode(item["token"], validate=True)
            except (binascii.Error, ValueError):
                logger.warning(
                    "token.undecodable",
                    extra={"event": "token_undecodable", "peer": item.get("userId")},
                )
                continue
            peers.append(
                PeerToken(user_id=item["userId"], display_name=item["displayName"], token=raw)
            )
        logger.info(
            "token.fetched",
            extra={"event": "client_fetched", "user_id": self.user_id, "count": len(peers)},
        )
        return peers

    async def unregister_token(self) -> bool:
        params = {"userId": self.user_id, "room": self._room()}
        r = self._check(await self._http.delete("/ni/token", params=params))
        return bool(r.json()["deleted"])

    async def list_rooms(self) -> dict[str, int]:
        r = self._check(await self._http.get("/ni/rooms"))
        return {room["name"]: room["userCount"] for room in r.json()["rooms"]}

    async def clear_room(self, room: str) -> int:
        r = self._check(await self._http.delete(f"/ni/rooms/{quote(room, safe='')}"))
        return int(r.json()["deletedTokens"])

    async def wait_for_peer(
        self, peer_id: str, *, poll_interval_s: float = 3.0, timeout_s: float = 30.0
    ) -> PeerToken:
        """Poll the room until `peer_id` shows up or raise PeerTimeoutError."""
        deadline = time.monotonic() + timeout_s
        while True:
            for peer in await self.fetch_tokens():
                if peer.user_id == peer_id:
                    return peer
            if time.monotonic() >= deadline:
                raise PeerTimeoutError(f"{peer_id} not seen in room {self.current_room}")
            await asyncio.sleep(poll_interval_s)
