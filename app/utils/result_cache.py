"""TTL result cache for expensive read operations.

Used in front of vector search to collapse bursts of identical queries
arriving within a short TTL. It is a pure optimization: storage errors and
disabled caching both behave like a miss, never like a failure.

Eviction is insertion-order (approximate oldest), not LRU: reads do not
refresh an entry's position.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable

from app.adapters.storage.base import AbstractKeyedStore
from app.core.errors import StorageAppError

logger = logging.getLogger(__name__)


class ResultCache:
    """Memoize JSON-compatible results in a keyed store with a TTL.

    Entries are stored as ``{"data": ..., "expires_at": <epoch seconds>}``.
    The insertion order of keys is tracked here rather than in the store, so
    the size bound holds for process-local and durable stores alike.

    Attributes:
        ttl_seconds: Time-to-live applied to all entries.
        max_entries: Maximum number of cached items.
        enabled: When False, ``get`` always misses and ``set`` does nothing.
    """

    def __init__(
        self,
        store: AbstractKeyedStore,
        *,
        ttl_seconds: float = 45,
        max_entries: int = 256,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.enabled = enabled
        self._store = store
        self._clock = clock
        self._order: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"ResultCache(ttl_seconds={self.ttl_seconds}, max_entries={self.max_entries}, "
            f"enabled={self.enabled}, size={len(self._order)}, hits={self._hits}, "
            f"misses={self._misses}, evictions={self._evictions})"
        )

    def _record_miss(self, key: str, reason: str) -> None:
        with self._lock:
            self._misses += 1
        logger.debug("cache.miss", extra={"cache_key": key[:48], "reason": reason})

    async def get(self, key: str) -> Any | None:
        """Return the cached value if present and unexpired.

        Expired entries are deleted as a side effect.
        """

        if not self.enabled:
            return None

        try:
            entry = await self._store.get(key)
        except StorageAppError:
            logger.warning("cache.storage_error", extra={"operation": "get"})
            self._record_miss(key, "storage_error")
            return None

        if entry is None:
            self._record_miss(key, "not_found")
            return None

        try:
            expires_at = float(entry["expires_at"])
            data = entry["data"]
        except (KeyError, TypeError, ValueError):
            await self._drop(key)
            self._record_miss(key, "malformed")
            return None

        if self._clock() >= expires_at:
            await self._drop(key)
            self._record_miss(key, "expired")
            return None

        with self._lock:
            self._hits += 1
        logger.debug("cache.hit", extra={"cache_key": key[:48]})
        return data

    async def set(self, key: str, value: Any) -> None:
        """Insert or overwrite ``key``, evicting the oldest key when over capacity."""

        if not self.enabled:
            return

        entry = {"data": value, "expires_at": self._clock() + self.ttl_seconds}
        try:
            await self._store.put(key, entry)
        except StorageAppError:
            logger.warning("cache.storage_error", extra={"operation": "set"})
            return
        except (TypeError, ValueError) as exc:
            logger.warning(
                "cache.value_unserializable",
                extra={"cache_key": key[:48], "error_type": type(exc).__name__},
            )
            return

        with self._lock:
            # Overwrites keep their original insertion position.
            self._order.setdefault(key, None)
            overflow = []
            while len(self._order) > self.max_entries:
                oldest, _ = self._order.popitem(last=False)
                overflow.append(oldest)

        for oldest in overflow:
            await self._drop(oldest, tracked=False)
            with self._lock:
                self._evictions += 1
            logger.debug("cache.evicted", extra={"cache_key": oldest[:48]})

        logger.debug(
            "cache.set",
            extra={"cache_key": key[:48], "size": len(self._order), "ttl_s": self.ttl_seconds},
        )

    async def _drop(self, key: str, *, tracked: bool = True) -> None:
        if tracked:
            with self._lock:
                self._order.pop(key, None)
        try:
            await self._store.delete(key)
        except StorageAppError:
            logger.warning("cache.storage_error", extra={"operation": "delete"})

    async def clear(self) -> None:
        """Remove every tracked entry and reset counters."""

        with self._lock:
            keys = list(self._order)
            self._order.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
        for key in keys:
            await self._drop(key, tracked=False)

    def stats(self) -> dict[str, int | float | bool]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "enabled": self.enabled,
                "ttl_seconds": self.ttl_seconds,
                "max_entries": self.max_entries,
                "entries": len(self._order),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
