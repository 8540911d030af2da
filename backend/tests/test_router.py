"""
Tests for PartyRouter bindings, driven directly with fake sockets.

Checks that a connection's binding and broadcast group are already in place
at every point where the router awaits a send or close.
"""

import asyncio
import json

import pytest

from party_hub.games import GameRegistry
from party_hub.ws_handlers import PartyRouter
from party_hub.ws_manager import ConnectionManager


class FakeSocket:
    """Records outgoing frames; `hook` runs before each send/close completes."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.close_code: int | None = None
        self.hook = None

    async def send_json(self, payload: dict) -> None:
        if self.hook:
            self.hook(payload)
        self.sent.append(payload)

    async def close(self, code: int = 1000) -> None:
        if self.hook:
            self.hook({"close": code})
        self.close_code = code


@pytest.fixture
def router(store, credentials) -> PartyRouter:
    return PartyRouter(store, credentials, ConnectionManager(), GameRegistry())


def connect(router: PartyRouter) -> tuple[str, FakeSocket]:
    ws = FakeSocket()
    return router.manager.connect(ws).id, ws


def send(router: PartyRouter, connection_id: str, **message) -> None:
    asyncio.run(router.handle_message(connection_id, json.dumps(message)))


class TestRebinding:
    def test_join_from_bound_connection_binds_before_sending(self, router: PartyRouter, store) -> None:
        alice_id, alice_ws = connect(router)
        send(router, alice_id, type="party:create", name="Alice")
        old_party = router.context(alice_id).party_id

        bob_id, _ = connect(router)
        send(router, bob_id, type="party:create", name="Bob")
        target = router.context(bob_id).party_id

        seen = []
        alice_ws.hook = lambda payload: seen.append((
            router.context(alice_id).party_id,
            alice_id in router.manager.room_members(f"party:{target}"),
        ))
        send(router, alice_id, type="party:join", partyId=target, name="Alice")

        assert seen
        assert all(s == (target, True) for s in seen)
        # Alice was alone in her first party
        assert old_party not in store

    def test_start_right_after_rebind_reaches_every_member(self, router: PartyRouter) -> None:
        host_id, host_ws = connect(router)
        send(router, host_id, type="party:create", name="Alice", gameId="chess")
        party_id = router.context(host_id).party_id

        guest_id, guest_ws = connect(router)
        send(router, guest_id, type="party:create", name="Bob")
        send(router, guest_id, type="party:join", partyId=party_id, name="Bob")
        send(router, host_id, type="party:start")

        started = [m for m in guest_ws.sent if m["type"] == "party:gameStarted"]
        assert len(started) == 1
        assert started[0]["joinToken"] != next(
            m for m in host_ws.sent if m["type"] == "party:gameStarted"
        )["joinToken"]

    def test_resume_binds_new_connection_before_closing_old(self, router: PartyRouter, store) -> None:
        old_id, old_ws = connect(router)
        send(router, old_id, type="party:create", name="Alice")
        token = old_ws.sent[0]["token"]
        party_id = router.context(old_id).party_id
        frames_before = len(old_ws.sent)

        new_id, new_ws = connect(router)
        at_close = []
        old_ws.hook = lambda payload: at_close.append((router.context(new_id), router.context(old_id)))
        assert asyncio.run(router.resume(new_id, token)) is True

        assert old_ws.close_code == 4000
        assert at_close[-1][0] is not None
        assert at_close[-1][1] is None
        # the replaced socket got no state broadcast, only the close
        assert len(old_ws.sent) == frames_before
        assert new_ws.sent[0]["type"] == "party:state"

        asyncio.run(router.release(old_id))
        assert store.get(party_id).players[0].connected is True
