"""Unit tests for the TTL result cache."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.adapters.storage.in_memory import InMemoryKeyedStore
from app.adapters.storage.redis_store import RedisKeyedStore
from app.core.errors import StorageAppError
from app.utils.result_cache import ResultCache


class SecondsClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> SecondsClock:
    return SecondsClock()


@pytest.fixture
def store() -> InMemoryKeyedStore:
    return InMemoryKeyedStore(max_entries=100)


@pytest.mark.asyncio
async def test_set_then_get_returns_value(store: InMemoryKeyedStore, clock: SecondsClock) -> None:
    cache = ResultCache(store, ttl_seconds=45, clock=clock)

    await cache.set("cache:query:a", [{"id": "1", "score": 0.9, "metadata": {}}])

    assert await cache.get("cache:query:a") == [{"id": "1", "score": 0.9, "metadata": {}}]
    assert cache.stats()["hits"] == 1


@pytest.mark.asyncio
async def test_empty_result_is_a_hit(store: InMemoryKeyedStore, clock: SecondsClock) -> None:
    cache = ResultCache(store, clock=clock)

    await cache.set("cache:context:a", [])

    assert await cache.get("cache:context:a") == []


@pytest.mark.asyncio
async def test_entry_expires_after_ttl(store: InMemoryKeyedStore, clock: SecondsClock) -> None:
    cache = ResultCache(store, ttl_seconds=45, clock=clock)
    await cache.set("k", "v")

    clock.now += 44.9
    assert await cache.get("k") == "v"

    clock.now = 1045.0
    assert await cache.get("k") is None
    assert await store.get("k") is None
    assert cache.stats()["entries"] == 0


@pytest.mark.asyncio
async def test_evicts_earliest_inserted_key(store: InMemoryKeyedStore, clock: SecondsClock) -> None:
    cache = ResultCache(store, max_entries=2, clock=clock)
    await cache.set("a", 1)
    await cache.set("b", 2)
    # Reads do not refresh position
    assert await cache.get("a") == 1

    await cache.set("c", 3)

    assert await cache.get("a") is None
    assert await cache.get("b") == 2
    assert await cache.get("c") == 3
    assert cache.stats()["evictions"] == 1


@pytest.mark.asyncio
async def test_overwrite_keeps_original_position(store: InMemoryKeyedStore, clock: SecondsClock) -> None:
    cache = ResultCache(store, max_entries=2, clock=clock)
    await cache.set("a", 1)
    await cache.set("b", 2)
    await cache.set("a", 10)

    await cache.set("c", 3)

    assert await cache.get("a") is None
    assert await cache.get("b") == 2


@pytest.mark.asyncio
async def test_disabled_cache_always_misses(store: InMemoryKeyedStore) -> None:
    cache = ResultCache(store, enabled=False)

    await cache.set("k", "v")

    assert await cache.get("k") is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_storage_errors_behave_like_a_miss() -> None:
    store = AsyncMock()
    store.get.side_effect = StorageAppError(code="storage_unavailable", message="down")
    store.put.side_effect = StorageAppError(code="storage_unavailable", message="down")
    cache = ResultCache(store)

    await cache.set("k", "v")

    assert await cache.get("k") is None
    assert cache.stats()["misses"] == 1
    assert cache.stats()["entries"] == 0


@pytest.mark.asyncio
async def test_clear_removes_entries_and_counters(store: InMemoryKeyedStore, clock: SecondsClock) -> None:
    cache = ResultCache(store, clock=clock)
    await cache.set("a", 1)
    await cache.get("a")

    await cache.clear()

    assert len(store) == 0
    assert cache.stats()["hits"] == 0
    assert await cache.get("a") is None


@pytest.mark.parametrize("kwargs", [{"ttl_seconds": 0}, {"max_entries": 0}])
def test_invalid_constructor_args(store: InMemoryKeyedStore, kwargs: dict) -> None:
    with pytest.raises(ValueError):
        ResultCache(store, **kwargs)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "record",
    [{"data": [1]}, {"expires_at": 2000.0}, {"data": [1], "expires_at": "soon"}, {"data": [1], "expires_at": None}],
)
async def test_malformed_record_is_a_miss(store: InMemoryKeyedStore, clock: SecondsClock, record: dict) -> None:
    cache = ResultCache(store, clock=clock)
    await store.put("k", record)

    assert await cache.get("k") is None
    assert await store.get("k") is None
    assert cache.stats()["misses"] == 1


@pytest.mark.asyncio
async def test_unserializable_value_is_not_cached(clock: SecondsClock) -> None:
    store = AsyncMock()
    store.put.side_effect = TypeError("Object of type object is not JSON serializable")
    cache = ResultCache(store, clock=clock)

    await cache.set("k", object())

    assert cache.stats()["entries"] == 0


@pytest.mark.asyncio
async def test_unserializable_value_over_redis_store_is_not_cached(clock: SecondsClock) -> None:
    client = MagicMock()
    client.set = AsyncMock()
    cache = ResultCache(RedisKeyedStore(client, partition="room:lobby"), clock=clock)

    await cache.set("k", {"bad": object()})

    client.set.assert_not_awaited()
    assert cache.stats()["entries"] == 0
