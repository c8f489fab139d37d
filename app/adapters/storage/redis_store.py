"""Redis-backed keyed store scoped to one partition.

Each logical partition (a chat room, a user session) gets its own key space
``{prefix}:{partition}:{key}`` so its rate limit and cache state is private
and survives process restarts. Records are stored as JSON strings.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as redis

from app.adapters.storage.base import AbstractKeyedStore
from app.core.errors import StorageAppError

logger = logging.getLogger(__name__)


class RedisKeyedStore(AbstractKeyedStore):
    """Durable store for a single partition.

    Any Redis failure is raised as ``StorageAppError``; the store never turns
    an outage into a silent miss. Callers pick their own failure policy.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        partition: str,
        key_prefix: str = "edgechat",
        ttl_seconds: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            client: Shared ``redis.asyncio`` client.
            partition: Partition name (e.g. ``room:lobby``).
            key_prefix: Application-wide key prefix.
            ttl_seconds: Optional expiry applied on every write so abandoned
                partitions do not accumulate forever.
        """
        if not partition:
            raise ValueError("partition must be a non-empty string")

        self._client = client
        self._partition = partition
        self._key_prefix = key_prefix
        self._ttl_seconds = ttl_seconds

    @property
    def partition(self) -> str:
        return self._partition

    def _full_key(self, key: str) -> str:
        return f"{self._key_prefix}:{self._partition}:{key}"

    def _storage_error(self, operation: str, exc: Exception) -> StorageAppError:
        logger.error(
            "storage.error",
            extra={
                "backend": "redis",
                "operation": operation,
                "partition": self._partition,
                "error_type": type(exc).__name__,
            },
        )
        return StorageAppError(
            code="storage_unavailable",
            message=f"Partition storage {operation} failed",
            details={"backend": "redis"},
        )

    async def get(self, key: str) -> dict[str, Any] | None:
        try:
            raw = await self._client.get(self._full_key(key))
        except redis.RedisError as exc:
            raise self._storage_error("get", exc) from exc

        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    async def put(self, key: str, value: dict[str, Any]) -> None:
        payload = json.dumps(value, separators=(",", ":"))
        try:
            if self._ttl_seconds:
                await self._client.set(self._full_key(key), payload, ex=self._ttl_seconds)
            else:
                await self._client.set(self._full_key(key), payload)
        except redis.RedisError as exc:
            raise self._storage_error("put", exc) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._full_key(key))
        except redis.RedisError as exc:
            raise self._storage_error("delete", exc) from exc
