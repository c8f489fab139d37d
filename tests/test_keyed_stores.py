"""Tests for the process-local and Redis keyed stores."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from app.adapters.storage.base import namespaced_key
from app.adapters.storage.in_memory import InMemoryKeyedStore
from app.adapters.storage.partitions import PartitionStoreFactory
from app.adapters.storage.redis_store import RedisKeyedStore
from app.core.errors import StorageAppError


@pytest.fixture
def redis_client() -> MagicMock:
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    return client


def test_namespaced_key() -> None:
    assert namespaced_key("rl", "search:1.2.3.4") == "rl:search:1.2.3.4"
    assert namespaced_key("cache", "query:x") == "cache:query:x"

    with pytest.raises(ValueError):
        namespaced_key("other", "k")
    with pytest.raises(ValueError):
        namespaced_key("rl", "")


class TestInMemoryKeyedStore:
    @pytest.mark.asyncio
    async def test_put_get_delete(self) -> None:
        store = InMemoryKeyedStore()

        await store.put("a", {"v": 1})
        assert await store.get("a") == {"v": 1}

        await store.delete("a")
        await store.delete("missing")
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_returns_copies(self) -> None:
        store = InMemoryKeyedStore()
        await store.put("a", {"v": 1})

        value = await store.get("a")
        value["v"] = 2

        assert await store.get("a") == {"v": 1}

    @pytest.mark.asyncio
    async def test_evicts_earliest_inserted_key(self) -> None:
        store = InMemoryKeyedStore(max_entries=2)
        await store.put("a", {"v": 1})
        await store.put("b", {"v": 2})
        await store.put("a", {"v": 3})
        await store.put("c", {"v": 4})

        assert len(store) == 2
        assert await store.get("a") is None
        assert await store.get("b") == {"v": 2}
        assert await store.get("c") == {"v": 4}

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        store = InMemoryKeyedStore()
        await store.put("a", {"v": 1})

        store.clear()

        assert len(store) == 0

    def test_rejects_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            InMemoryKeyedStore(max_entries=0)


class TestRedisKeyedStore:
    @pytest.mark.asyncio
    async def test_put_serializes_json_with_ttl(self, redis_client: MagicMock) -> None:
        store = RedisKeyedStore(redis_client, partition="room:lobby", key_prefix="edgechat", ttl_seconds=60)

        await store.put("rl:k", {"count": 1, "window_reset": 5})

        redis_client.set.assert_awaited_once_with(
            "edgechat:room:lobby:rl:k", '{"count":1,"window_reset":5}', ex=60
        )

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self, redis_client: MagicMock) -> None:
        redis_client.get.return_value = b'{"count": 2}'
        store = RedisKeyedStore(redis_client, partition="room:lobby")

        assert await store.get("rl:k") == {"count": 2}
        redis_client.get.assert_awaited_once_with("edgechat:room:lobby:rl:k")

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, redis_client: MagicMock) -> None:
        store = RedisKeyedStore(redis_client, partition="room:lobby")

        assert await store.get("rl:k") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["get", "set", "delete"])
    async def test_redis_errors_become_storage_errors(self, redis_client: MagicMock, operation: str) -> None:
        getattr(redis_client, operation).side_effect = redis.ConnectionError("down")
        store = RedisKeyedStore(redis_client, partition="room:lobby")

        with pytest.raises(StorageAppError) as exc_info:
            if operation == "get":
                await store.get("k")
            elif operation == "set":
                await store.put("k", {"v": 1})
            else:
                await store.delete("k")

        assert exc_info.value.code == "storage_unavailable"

    def test_requires_partition(self, redis_client: MagicMock) -> None:
        with pytest.raises(ValueError):
            RedisKeyedStore(redis_client, partition="")


class TestPartitionStoreFactory:
    def test_falls_back_without_redis(self) -> None:
        fallback = InMemoryKeyedStore()
        factory = PartitionStoreFactory(fallback=fallback)

        assert factory.durable is False
        assert factory.for_partition("room:a") is fallback
        assert factory.for_partition(None) is fallback

    def test_redis_store_per_partition(self, redis_client: MagicMock) -> None:
        fallback = InMemoryKeyedStore()
        factory = PartitionStoreFactory(fallback=fallback, redis_client=redis_client)

        store = factory.for_partition("room:a")

        assert factory.durable is True
        assert isinstance(store, RedisKeyedStore)
        assert store.partition == "room:a"
        assert factory.for_partition(None) is fallback
