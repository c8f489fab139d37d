"""Select the store backing a partition.

With Redis configured every partition gets a durable ``RedisKeyedStore``.
Without it, all partitions fall back to one shared process-local store; that
fallback is best-effort and keys stay distinct because callers prefix them
with the partition name.
"""

from __future__ import annotations

import redis.asyncio as redis

from app.adapters.storage.base import AbstractKeyedStore
from app.adapters.storage.in_memory import InMemoryKeyedStore
from app.adapters.storage.redis_store import RedisKeyedStore


class PartitionStoreFactory:
    """Hand out stores per partition, durable when possible."""

    def __init__(
        self,
        *,
        fallback: InMemoryKeyedStore,
        redis_client: redis.Redis | None = None,
        key_prefix: str = "edgechat",
        ttl_seconds: int | None = 86_400,
    ) -> None:
        self._fallback = fallback
        self._redis_client = redis_client
        self._key_prefix = key_prefix
        self._ttl_seconds = ttl_seconds

    @property
    def durable(self) -> bool:
        return self._redis_client is not None

    @property
    def fallback(self) -> InMemoryKeyedStore:
        return self._fallback

    def for_partition(self, partition: str | None) -> AbstractKeyedStore:
        """Return the store for ``partition`` (None means the shared store)."""

        if partition is None or self._redis_client is None:
            return self._fallback
        return RedisKeyedStore(
            self._redis_client,
            partition=partition,
            key_prefix=self._key_prefix,
            ttl_seconds=self._ttl_seconds,
        )
