"""Tests for the memory and Redis cache backends."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from ragchat.services.unified_cache.backends import (
    ConnectionState,
    RedisBackend,
)


@pytest.mark.asyncio
class TestMemoryBackend:
    """Tests for MemoryBackend."""

    async def test_starts_disconnected(self, memory_backend):
        assert memory_backend.state is ConnectionState.DISCONNECTED
        assert not memory_backend.enabled

    async def test_connect_enables(self, memory_backend):
        await memory_backend.connect()
        assert memory_backend.state is ConnectionState.CONNECTED
        assert memory_backend.enabled

    async def test_set_and_get_round_trip(self, connected_memory_backend):
        assert await connected_memory_backend.set("k", {"a": [1, 2]}, ttl=60)
        assert await connected_memory_backend.get("k") == {"a": [1, 2]}

    async def test_values_are_copies(self, connected_memory_backend):
        value = {"messages": []}
        await connected_memory_backend.set("k", value)
        value["messages"].append("mutated")
        assert await connected_memory_backend.get("k") == {"messages": []}

    async def test_expired_entry_is_a_miss(self, connected_memory_backend):
        await connected_memory_backend.set("k", "v", ttl=60)
        connected_memory_backend.get_raw_entry("k").expires_at = 1.0
        assert await connected_memory_backend.get("k") is None
        assert not await connected_memory_backend.exists("k")

    async def test_delete(self, connected_memory_backend):
        await connected_memory_backend.set("k", "v")
        assert await connected_memory_backend.delete("k")
        assert not await connected_memory_backend.delete("k")

    async def test_clear_all_and_size(self, connected_memory_backend):
        await connected_memory_backend.set("a", 1)
        await connected_memory_backend.set("b", 2)
        assert await connected_memory_backend.approximate_size() == 2
        assert await connected_memory_backend.clear_all()
        assert await connected_memory_backend.approximate_size() == 0

    async def test_transport_error_disables(self, connected_memory_backend):
        await connected_memory_backend.set("k", "v")
        connected_memory_backend.simulate_transport_error()

        assert connected_memory_backend.state is ConnectionState.DISCONNECTED
        assert await connected_memory_backend.get("k") is None
        assert not await connected_memory_backend.set("k", "w")
        assert await connected_memory_backend.approximate_size() == 0
        assert connected_memory_backend.stats.errors == 1

    async def test_reconnect_after_transport_error(self, connected_memory_backend):
        connected_memory_backend.simulate_transport_error()
        await connected_memory_backend.connect()
        assert connected_memory_backend.enabled


def make_client(**overrides):
    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.exists = AsyncMock(return_value=1)
    client.flushdb = AsyncMock(return_value=True)
    client.dbsize = AsyncMock(return_value=7)
    client.aclose = AsyncMock()
    for name, value in overrides.items():
        setattr(client, name, value)
    return client


@pytest.mark.asyncio
class TestRedisBackend:
    """Tests for RedisBackend against a mocked client."""

    async def test_connect_pings(self):
        client = make_client()
        backend = RedisBackend("redis://test", reconnect_interval=0, client=client)
        await backend.connect()
        assert backend.enabled
        client.ping.assert_awaited_once()

    async def test_failed_ping_leaves_disconnected(self):
        client = make_client(ping=AsyncMock(side_effect=RedisConnectionError("refused")))
        backend = RedisBackend("redis://test", reconnect_interval=0, client=client)
        await backend.connect()
        assert backend.state is ConnectionState.DISCONNECTED

    async def test_no_url_leaves_disconnected(self):
        backend = RedisBackend(None, reconnect_interval=0)
        await backend.connect()
        assert not backend.enabled

    async def test_get_decodes_json(self):
        client = make_client(get=AsyncMock(return_value='{"x": 1}'))
        backend = RedisBackend("redis://test", reconnect_interval=0, client=client)
        await backend.connect()
        assert await backend.get("k") == {"x": 1}
        assert backend.stats.hits == 1

    async def test_set_uses_ttl(self):
        client = make_client()
        backend = RedisBackend("redis://test", reconnect_interval=0, client=client)
        await backend.connect()
        assert await backend.set("k", "v", ttl=3600)
        client.setex.assert_awaited_once()
        args = client.setex.await_args.args
        assert args[0] == "k"
        assert args[1].total_seconds() == 3600
        assert args[2] == '"v"'

    async def test_transport_error_flips_state(self):
        client = make_client(get=AsyncMock(side_effect=RedisConnectionError("reset")))
        backend = RedisBackend("redis://test", reconnect_interval=0, client=client)
        await backend.connect()

        assert await backend.get("k") is None
        assert backend.state is ConnectionState.DISCONNECTED

        # Subsequent operations short-circuit without touching the client
        assert not await backend.set("k", "v")
        client.setex.assert_not_awaited()

    async def test_command_error_keeps_connection(self):
        client = make_client(get=AsyncMock(side_effect=ResponseError("WRONGTYPE")))
        backend = RedisBackend("redis://test", reconnect_interval=0, client=client)
        await backend.connect()

        assert await backend.get("k") is None
        assert backend.enabled
        assert backend.stats.errors == 1

    async def test_undecodable_value_is_a_miss(self):
        client = make_client(get=AsyncMock(return_value="not json{"))
        backend = RedisBackend("redis://test", reconnect_interval=0, client=client)
        await backend.connect()
        assert await backend.get("k") is None

    async def test_approximate_size_and_clear(self):
        client = make_client()
        backend = RedisBackend("redis://test", reconnect_interval=0, client=client)
        await backend.connect()
        assert await backend.approximate_size() == 7
        assert await backend.clear_all()
        client.flushdb.assert_awaited_once()

    async def test_disconnect_closes_client(self):
        client = make_client()
        backend = RedisBackend("redis://test", reconnect_interval=0, client=client)
        await backend.connect()
        await backend.disconnect()
        client.aclose.assert_awaited_once()
        assert backend.state is ConnectionState.DISCONNECTED


async def wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True


@pytest.mark.asyncio
class TestRedisReconnectMonitor:
    """Tests for the background reconnect monitor."""

    async def test_monitor_reconnects_after_failed_connect(self):
        client = make_client(ping=AsyncMock(side_effect=[RedisConnectionError("refused"), True]))
        backend = RedisBackend("redis://test", reconnect_interval=0.01, client=client)

        await backend.connect()
        assert backend.state is ConnectionState.DISCONNECTED

        assert await wait_until(lambda: backend.enabled)
        assert client.ping.await_count == 2
        await backend.disconnect()

    async def test_monitor_recovers_from_transport_error(self):
        client = make_client(get=AsyncMock(side_effect=RedisConnectionError("reset")))
        backend = RedisBackend("redis://test", reconnect_interval=0.01, client=client)
        await backend.connect()

        assert await backend.get("k") is None
        assert not backend.enabled

        assert await wait_until(lambda: backend.enabled)
        await backend.disconnect()

    async def test_disconnect_cancels_monitor(self):
        client = make_client()
        backend = RedisBackend("redis://test", reconnect_interval=0.01, client=client)
        await backend.connect()
        task = backend._monitor_task
        assert task is not None and not task.done()

        await backend.disconnect()

        assert task.done()
        assert backend._monitor_task is None
        assert not backend.enabled
