"""Keyed store interface shared by the rate limiter and the result cache.

Callers depend on this abstraction only; whether the data survives process
death is decided by whoever constructs the store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

# Key namespaces; every key written by this package carries one of them.
RATE_LIMIT_NAMESPACE = "rl"
CACHE_NAMESPACE = "cache"

_NAMESPACES = frozenset({RATE_LIMIT_NAMESPACE, CACHE_NAMESPACE})


def namespaced_key(namespace: str, key: str) -> str:
    """Prefix ``key`` with a known namespace.

    Raises:
        ValueError: If the namespace is unknown or the key is empty.
    """

    if namespace not in _NAMESPACES:
        raise ValueError(f"unknown key namespace: {namespace!r}")
    if not key:
        raise ValueError("key must be a non-empty string")
    return f"{namespace}:{key}"


class AbstractKeyedStore(ABC):
    """Async key/value store holding JSON-compatible records."""

    @abstractmethod
    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the record stored under ``key`` or None."""
        raise NotImplementedError

    @abstractmethod
    async def put(self, key: str, value: dict[str, Any]) -> None:
        """Insert or overwrite the record stored under ``key``."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        raise NotImplementedError
