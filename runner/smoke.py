#!/usr/bin/env python3
"""Two-device smoke run against a live relay.

Steps:
- wait for server health
- alice and bob both register a token in the room
- each polls until it sees the other's token, byte for byte
- alice refreshes her token
- both unregister and the room disappears from /ni/rooms
- emit a compact summary and exit code
"""
from __future__ import annotations

import asyncio
import sys

import httpx

from app.logging_conf import get_logger, setup_logging
from runner.cli import parse_args
from runner.client import RelayClient, wait_for_health
from runner.types import SmokeError, now_ms
from runner.utils import make_fake_token, summarize

setup_logging()
logger = get_logger("runner")


async def run_smoke(
    *,
    base_url: str,
    room: str,
    poll_interval_s: float = 3.0,
    timeout_s: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    started = now_ms()
    steps: list[dict] = []
    await wait_for_health(base_url, transport=transport)

    alice = RelayClient(base_url, "alice", "Alice", transport=transport)
    bob = RelayClient(base_url, "bob", "Bob", transport=transport)
    tokens = {"alice": make_fake_token("alice"), "bob": make_fake_token("bob")}
    try:
        for c in (alice, bob):
            c.join_room(room)
            await c.register_token(tokens[c.user_id])
        steps.append({"step": "register", "ok": True})

        for me, other in ((alice, bob), (bob, alice)):
            try:
                peer = await me.wait_for_peer(
                    other.user_id, poll_interval_s=poll_interval_s, timeout_s=timeout_s
                )
                ok = peer.token == tokens[other.user_id]
                steps.append({"step": f"discover:{me.user_id}", "ok": ok})
            except SmokeError as e:
                steps.append({"step": f"discover:{me.user_id}", "ok": False, "error": str(e)})

        await alice.refresh_token(tokens["alice"])
        steps.append({"step": "refresh", "ok": True})

        deleted = [await c.unregister_token() for c in (alice, bob)]
        steps.append({"step": "unregister", "ok": all(deleted)})

        rooms = await alice.list_rooms()
        steps.append({"step": "room_gone", "ok": room not in rooms})
    except SmokeError as e:
        steps.append({"step": "aborted", "ok": False, "error": str(e)})
    finally:
        await alice.aclose()
        await bob.aclose()

    summary, exit_code = summarize(room=room, steps=steps, started_ms=started, finished_ms=now_ms())
    logger.info("runner.summary", extra=summary)
    return exit_code


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv or sys.argv[1:])
    code = asyncio.run(
        run_smoke(
            base_url=args.base_url,
            room=args.room,
            poll_interval_s=args.poll_interval,
            timeout_s=args.timeout,
        )
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
