"""Tests for the polling client."""

import asyncio
import json

import pytest

from presence_client.websocket_client import PresenceClient, RequestTimeout, ServerError
from presence_server.errors import MalformedState
from presence_server.names import NameSource
from presence_server.protocol import PresenceSession


@pytest.fixture
def session(registry, word_files):
    adjectives, nouns = word_files
    return PresenceSession(registry, NameSource(adjectives_file=adjectives, nouns_file=nouns))


def connect(client: PresenceClient, session: PresenceSession) -> list:
    """Wire the client straight to a session, bypassing the network."""
    sent = []

    async def send(text):
        message = json.loads(text)
        sent.append(message)
        reply = session.handle_message(message)
        asyncio.get_running_loop().call_soon(client.handle_reply, reply)

    client.set_send_func(send)
    return sent


class TestRequests:
    """Tests for request correlation."""

    @pytest.mark.asyncio
    async def test_request_without_send_func(self):
        """Request raises error without send function."""
        client = PresenceClient("ws://localhost/ws")
        with pytest.raises(ValueError, match="Send function not configured"):
            await client.request({"type": "register"})

    @pytest.mark.asyncio
    async def test_request_timeout(self):
        """Request raises RequestTimeout when nobody answers."""
        client = PresenceClient("ws://localhost/ws", request_timeout_ms=50)

        async def send(text):
            pass

        client.set_send_func(send)
        with pytest.raises(RequestTimeout) as exc_info:
            await client.request({"type": "poll", "id": "x"})
        assert exc_info.value.kind == "poll"

    @pytest.mark.asyncio
    async def test_error_reply(self, session):
        """Error replies raise ServerError."""
        client = PresenceClient("ws://localhost/ws")
        connect(client, session)
        with pytest.raises(ServerError) as exc_info:
            await client.request({"type": "poll", "id": "ghost"})
        assert exc_info.value.not_registered

    @pytest.mark.asyncio
    async def test_overlapping_requests(self, session):
        """Concurrent requests each get their own reply."""
        client = PresenceClient("ws://localhost/ws")
        connect(client, session)
        replies = await asyncio.gather(*[client.request({"type": "register"}) for _ in range(5)])
        ids = {r["client"]["id"] for r in replies}
        assert len(ids) == 5

    def test_unknown_reply(self):
        """Replies with no pending request are ignored."""
        client = PresenceClient("ws://localhost/ws")
        assert client.handle_reply({"type": "unchanged", "request_id": "nope"}) is False
        assert client.handle_reply({"type": "unchanged"}) is False


class TestPolling:
    """Tests for registration, polling and recovery."""

    @pytest.mark.asyncio
    async def test_poll_registers_first(self, session):
        """Polling without an identity registers, then gets the full state."""
        seen = []
        client = PresenceClient("ws://localhost/ws", on_state=seen.append)
        connect(client, session)

        state = await client.poll()
        assert client.identity.display_name == "Sunny Otter"
        assert state is not None
        assert seen == [state]
        assert client.peers[0].id == client.identity.id

        assert await client.poll() is None

    @pytest.mark.asyncio
    async def test_set_color(self, session):
        """Color updates reach the registry."""
        client = PresenceClient("ws://localhost/ws")
        connect(client, session)
        await client.register()
        await client.set_color(120)
        assert session.state().clients[0].attribute == 120

    @pytest.mark.asyncio
    async def test_reregisters_after_eviction(self, session, registry, clock):
        """NotRegistered makes the client start over with a new identity."""
        client = PresenceClient("ws://localhost/ws", color=90)
        connect(client, session)
        await client.register()
        old_id = client.identity.id
        await client.poll()

        other = registry.register("other")
        clock.advance(4000)
        registry.touch(other.id, clock.now)
        registry.poll(other.id)  # sweeps out the idle client

        assert await client.poll() is None
        assert client.identity.id != old_id
        assert registry.get(client.identity.id).attribute == 90

        state = await client.poll()
        assert client.identity.id in [c.id for c in state.clients]

    @pytest.mark.asyncio
    async def test_set_color_after_eviction(self, session, registry):
        """Color update on an evicted id re-registers and applies."""
        client = PresenceClient("ws://localhost/ws")
        connect(client, session)
        await client.register()
        client.identity = client.identity.model_copy(update={"id": "evicted"})

        await client.set_color(10)
        assert client.identity.id != "evicted"
        assert registry.get(client.identity.id).attribute == 10

    @pytest.mark.asyncio
    async def test_malformed_state(self):
        """A broken state reply raises MalformedState."""
        client = PresenceClient("ws://localhost/ws")

        async def send(text):
            message = json.loads(text)
            if message["type"] == "register":
                reply = {
                    "type": "registered",
                    "client": {"id": "a", "display_name": "A", "attribute": 0, "last_updated": 1},
                }
            else:
                reply = {"type": "state", "state": {"clients": "nope"}}
            reply["request_id"] = message["request_id"]
            asyncio.get_running_loop().call_soon(client.handle_reply, reply)

        client.set_send_func(send)
        with pytest.raises(MalformedState):
            await client.poll()
