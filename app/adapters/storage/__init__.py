"""Keyed storage adapters.

Rate limit counters and cached query results live behind the same small
``get``/``put``/``delete`` interface. A process-local map serves stateless
HTTP handlers; a Redis-backed store gives each partition (chat room, user
session) durable state that survives restarts.
"""

from app.adapters.storage.base import AbstractKeyedStore, namespaced_key
from app.adapters.storage.in_memory import InMemoryKeyedStore
from app.adapters.storage.partitions import PartitionStoreFactory
from app.adapters.storage.redis_store import RedisKeyedStore

__all__ = [
    "AbstractKeyedStore",
    "InMemoryKeyedStore",
    "PartitionStoreFactory",
    "RedisKeyedStore",
    "namespaced_key",
]
