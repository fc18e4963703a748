"""Tests for the connection registry."""

import pytest

from fakester.errors import AuthenticationRequired
from fakester.registry import UNBOUND, ConnectionRegistry

from conftest import MockWebSocket, identity


class TestBinding:
    @pytest.mark.asyncio
    async def test_bind_without_identity_is_rejected(self):
        registry = ConnectionRegistry()
        ws = MockWebSocket()
        with pytest.raises(AuthenticationRequired):
            registry.bind(ws, None)
        assert registry.resolve(ws) is UNBOUND
        assert len(registry) == 0

    def test_resolve_unknown_connection_is_unbound(self):
        registry = ConnectionRegistry()
        binding = registry.resolve(object())
        assert binding.identity is None
        assert binding.room_code is None
        assert binding.is_bound is False

    @pytest.mark.asyncio
    async def test_attach_and_detach_are_idempotent(self):
        registry = ConnectionRegistry()
        ws = MockWebSocket()
        registry.bind(ws, identity("a"))

        registry.attach_room(ws, "111111")
        registry.attach_room(ws, "111111")
        assert registry.resolve(ws).room_code == "111111"
        assert registry.resolve(ws).identity.id == "a"

        registry.detach_room(ws)
        registry.detach_room(ws)
        assert registry.resolve(ws).room_code is None
        assert registry.resolve(ws).is_bound

        await registry.on_close(ws)

    def test_attach_unbound_connection_is_ignored(self):
        registry = ConnectionRegistry()
        ws = MockWebSocket()
        registry.attach_room(ws, "111111")
        assert registry.resolve(ws) is UNBOUND


class TestOutbound:
    @pytest.mark.asyncio
    async def test_messages_arrive_in_order(self):
        registry = ConnectionRegistry()
        ws = MockWebSocket()
        registry.bind(ws, identity("a"))
        for i in range(5):
            registry.send(ws, {"type": "N", "payload": i})
        await registry.drain()
        assert [m["payload"] for m in ws.sent_messages] == [0, 1, 2, 3, 4]
        await registry.on_close(ws)

    @pytest.mark.asyncio
    async def test_failed_send_does_not_block_drain(self):
        registry = ConnectionRegistry()
        ws = MockWebSocket(fail_sends=True)
        registry.bind(ws, identity("a"))
        registry.send(ws, {"type": "N"})
        registry.send(ws, {"type": "N"})
        await registry.drain()
        assert ws.sent_messages == []
        await registry.on_close(ws)

    def test_send_to_unknown_connection_is_ignored(self):
        registry = ConnectionRegistry()
        registry.send(MockWebSocket(), {"type": "N"})


class TestOnClose:
    @pytest.mark.asyncio
    async def test_runs_disconnect_handler_then_forgets_connection(self):
        seen = []

        async def handler(conn):
            # Still resolvable while the room manager handles it
            seen.append(registry.resolve(conn).room_code)

        registry = ConnectionRegistry(on_disconnect=handler)
        ws = MockWebSocket()
        registry.bind(ws, identity("a"))
        registry.attach_room(ws, "222222")

        await registry.on_close(ws)

        assert seen == ["222222"]
        assert registry.resolve(ws) is UNBOUND
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_handler_skipped_when_not_in_a_room(self):
        calls = []

        async def handler(conn):
            calls.append(conn)

        registry = ConnectionRegistry(on_disconnect=handler)
        ws = MockWebSocket()
        registry.bind(ws, identity("a"))
        await registry.on_close(ws)
        assert calls == []
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_entry_removed_even_if_handler_fails(self):
        async def handler(conn):
            raise RuntimeError("boom")

        registry = ConnectionRegistry(on_disconnect=handler)
        ws = MockWebSocket()
        registry.bind(ws, identity("a"))
        registry.attach_room(ws, "333333")
        with pytest.raises(RuntimeError):
            await registry.on_close(ws)
        assert registry.resolve(ws) is UNBOUND

    @pytest.mark.asyncio
    async def test_unknown_connection_is_noop(self):
        registry = ConnectionRegistry()
        await registry.on_close(MockWebSocket())
