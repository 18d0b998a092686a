"""Tests for the device-side relay client and the smoke runner."""

import asyncio
import base64

import httpx
import pytest

from app.config import Settings
from app.main import create_app
from runner.client import RelayClient, wait_for_health
from runner.smoke import run_smoke
from runner.types import NotConfiguredError, PeerTimeoutError, RelayServerError
from runner.utils import make_fake_token, summarize

BASE = "http://relay.test"


@pytest.fixture
def transport(store):
    return httpx.ASGITransport(app=create_app(store=store, settings=Settings()))


def run(coro):
    return asyncio.run(coro)


class TestRelayClient:
    def test_two_devices_see_each_other(self, transport):
        async def scenario():
            async with RelayClient(BASE, "alice", "Alice", transport=transport) as a, RelayClient(
                BASE, "bob", transport=transport
            ) as b:
                a.join_room("demo")
                b.join_room("demo")
                await a.register_token(b"alice-token")
                await b.register_token(b"bob-token")
                return await a.fetch_tokens(), await b.fetch_tokens()

        seen_by_a, seen_by_b = run(scenario())

        assert [(p.user_id, p.display_name, p.token) for p in seen_by_a] == [
            ("bob", "bob", b"bob-token")
        ]
        assert [(p.user_id, p.display_name, p.token) for p in seen_by_b] == [
            ("alice", "Alice", b"alice-token")
        ]

    def test_unregister_and_rooms(self, transport, store):
        async def scenario():
            async with RelayClient(BASE, "alice", transport=transport) as a:
                a.join_room("demo")
                await a.register_token(b"x")
                rooms = await a.list_rooms()
                deleted = await a.unregister_token()
                again = await a.unregister_token()
                return rooms, deleted, again

        rooms, deleted, again = run(scenario())

        assert rooms == {"demo": 1}
        assert (deleted, again) == (True, False)
        assert len(store) == 0

    def test_clear_room(self, transport, store):
        store.register("a", None, "QQ==", "X")
        store.register("b", None, "Qg==", "X")

        async def scenario():
            async with RelayClient(BASE, "admin", transport=transport) as c:
                return await c.clear_room("X")

        assert run(scenario()) == 2

    def test_clear_room_escapes_name(self, transport, store):
        store.register("a", None, "QQ==", "a")
        store.register("b", None, "Qg==", "a?b")

        async def scenario():
            async with RelayClient(BASE, "admin", transport=transport) as c:
                return await c.clear_room("a?b")

        assert run(scenario()) == 1
        assert [e.user_id for e in store.get_tokens_in_room("a")] == ["a"]
        assert store.get_tokens_in_room("a?b") == []

    def test_requires_room(self, transport):
        async def scenario():
            async with RelayClient(BASE, "alice", transport=transport) as a:
                await a.fetch_tokens()

        with pytest.raises(NotConfiguredError):
            run(scenario())

    def test_leave_room_unconfigures(self, transport):
        async def scenario():
            async with RelayClient(BASE, "alice", transport=transport) as a:
                a.join_room("demo")
                a.leave_room()
                await a.register_token(b"x")

        with pytest.raises(NotConfiguredError):
            run(scenario())

    def test_server_error_raises(self):
        transport = httpx.MockTransport(lambda req: httpx.Response(500, json={"error": "x"}))

        async def scenario():
            async with RelayClient(BASE, "alice", transport=transport) as a:
                a.join_room("demo")
                await a.register_token(b"x")

        with pytest.raises(RelayServerError) as exc:
            run(scenario())
        assert exc.value.status_code == 500

    def test_skips_undecodable_tokens(self):
        good = base64.b64encode(b"ok").decode()

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["excludeUserId"] == "alice"
            return httpx.Response(
                200,
                json={
                    "tokens": [
                        {"userId": "bob", "displayName": "Bob", "token": good},
                        {"userId": "eve", "displayName": "Eve", "token": "%%%"},
                    ]
                },
            )

        async def scenario():
            async with RelayClient(BASE, "alice", transport=httpx.MockTransport(handler)) as a:
                a.join_room("demo")
                return await a.fetch_tokens()

        peers = run(scenario())

        assert [p.user_id for p in peers] == ["bob"]

    def test_wait_for_peer_times_out(self, transport):
        async def scenario():
            async with RelayClient(BASE, "alice", transport=transport) as a:
                a.join_room("empty")
                await a.wait_for_peer("bob", poll_interval_s=0.01, timeout_s=0.05)

        with pytest.raises(PeerTimeoutError):
            run(scenario())


def test_wait_for_health(transport):
    run(wait_for_health(BASE, timeout_s=2.0, transport=transport))


def test_smoke_run_passes(transport, store):
    code = run(
        run_smoke(
            base_url=BASE, room="smoke", poll_interval_s=0.01, timeout_s=1.0, transport=transport
        )
    )

    assert code == 0
    assert len(store) == 0


class TestSummarize:
    def test_all_passed(self):
        summary, code = summarize(
            room="r", steps=[{"step": "a", "ok": True}], started_ms=100, finished_ms=250
        )

        assert code == 0
        assert summary["passed"] == 1
        assert summary["elapsed_ms"] == 150

    def test_failure_sets_exit_code(self):
        steps = [{"step": "a", "ok": True}, {"step": "b", "ok": False, "error": "boom"}]

        summary, code = summarize(room="r", steps=steps, started_ms=0, finished_ms=1)

        assert code == 1
        assert summary["failed"] == [{"step": "b", "ok": False, "error": "boom"}]

    def test_no_steps_is_failure(self):
        assert summarize(room="r", steps=[], started_ms=0, finished_ms=0)[1] == 1


def test_fake_tokens_are_distinct():
    assert make_fake_token("a") != make_fake_token("a")
    assert make_fake_token("bob").startswith(b"bob:")
