"""Process-local keyed store.

Notes:
- Per-process only: every worker holds its own copy.
- Bounded: once ``max_entries`` is exceeded the earliest-inserted key is
  dropped (insertion order, not recency).
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading
from typing import Any

from app.adapters.storage.base import AbstractKeyedStore


class InMemoryKeyedStore(AbstractKeyedStore):
    """Dict-backed store with an approximate size cap.

    Overwriting an existing key keeps its original insertion position, so a
    hot key is still evicted once it becomes the oldest one.
    """

    def __init__(self, *, max_entries: int = 512) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._max_entries = max_entries
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, Any]] = {}

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    async def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            value = self._data.get(key)
            return dict(value) if value is not None else None

    async def put(self, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            self._data[key] = dict(value)
            while len(self._data) > self._max_entries:
                oldest = next(iter(self._data))
                del self._data[oldest]

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        """Drop every entry (used to isolate tests)."""

        with self._lock:
            self._data.clear()
