"""Windowed rate limiter with an escalating penalty (block) window.

A client that stays under ``limit`` per window never notices the limiter.
The call that goes over the limit starts a penalty window during which every
call is denied, so bursty clients cannot simply retry the instant the
counting window rolls over.

State per identifier (``RateLimitEntry``) lives in an ``AbstractKeyedStore``
under the ``rl:`` namespace. Reads and writes against the store are the only
suspension points; the counter arithmetic itself is synchronous. With the
shared process-local store two concurrent requests for the same identifier
may interleave between read and write and under-count; partition-scoped
stores process one message at a time and are not affected.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable

from app.adapters.rate_limit.base import (
    LIMIT_EXCEEDED,
    PENALTY_ACTIVE,
    AbstractRateLimiter,
    RateLimitResult,
)
from app.adapters.storage.base import RATE_LIMIT_NAMESPACE, AbstractKeyedStore, namespaced_key

logger = logging.getLogger(__name__)


def epoch_ms() -> int:
    """Wall-clock time in epoch milliseconds."""

    return int(time.time() * 1000)


@dataclass
class RateLimitEntry:
    """Counter state for one identifier.

    ``count`` never exceeds the limit it was consumed against; overflow sets
    ``block_until`` instead.
    """

    count: int
    window_reset: int
    block_until: int | None = None

    def is_blocked(self, now: int) -> bool:
        return self.block_until is not None and now < self.block_until

    def is_expired(self, now: int) -> bool:
        return now >= self.window_reset and not self.is_blocked(now)

    def to_record(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "RateLimitEntry":
        return cls(
            count=int(record["count"]),
            window_reset=int(record["window_reset"]),
            block_until=record.get("block_until"),
        )


def _ceil_seconds(duration_ms: int) -> int:
    return max(0, math.ceil(duration_ms / 1000))


class PenaltyWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter storing its counters in a keyed store.

    The same class serves partition-scoped durable stores and the shared
    process-local store; it never needs to know which one it was given.
    """

    def __init__(
        self,
        store: AbstractKeyedStore,
        *,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Backing store for ``RateLimitEntry`` records.
            clock: Time source returning epoch milliseconds.
        """
        self._store = store
        self._clock = clock

    @property
    def store(self) -> AbstractKeyedStore:
        return self._store

    async def _load_entry(self, key: str, now: int) -> RateLimitEntry | None:
        """Read an entry, treating expired and unblocked entries as absent."""

        record = await self._store.get(key)
        if record is None:
            return None

        entry = RateLimitEntry.from_record(record)
        if entry.is_expired(now):
            return None
        return entry

    async def consume(
        self,
        identifier: str,
        *,
        limit: int,
        window_ms: int,
        block_duration_ms: int | None = None,
    ) -> RateLimitResult:
        """Consume one unit of budget for ``identifier``.

        Storage failures propagate to the caller; they are never turned into
        an allow-by-default here.

        Raises:
            ValueError: If the identifier is empty or the limits are invalid.
            StorageAppError: If the backing store fails.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if block_duration_ms is not None and block_duration_ms < 1:
            raise ValueError("block_duration_ms must be >= 1")

        key = namespaced_key(RATE_LIMIT_NAMESPACE, identifier)
        now = self._clock()
        entry = await self._load_entry(key, now)

        if entry is not None and entry.is_blocked(now):
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_at=entry.window_reset,
                retry_after_seconds=_ceil_seconds(entry.block_until - now),
                blocked=True,
                reason=PENALTY_ACTIVE,
            )

        # Once a penalty has been served the identifier starts a fresh window.
        if entry is None or now >= entry.window_reset or entry.block_until is not None:
            entry = RateLimitEntry(count=0, window_reset=now + window_ms)

        entry.count += 1

        if entry.count > limit:
            penalty_ms = (
                block_duration_ms
                if block_duration_ms is not None
                else math.ceil(window_ms * 0.5)
            )
            entry.count = limit
            entry.block_until = now + penalty_ms
            await self._store.put(key, entry.to_record())

            logger.debug(
                "rate_limit.penalty_started",
                extra={"limit": limit, "window_ms": window_ms, "penalty_ms": penalty_ms},
            )
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_at=entry.window_reset,
                retry_after_seconds=_ceil_seconds(penalty_ms),
                blocked=True,
                reason=LIMIT_EXCEEDED,
            )

        await self._store.put(key, entry.to_record())
        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - entry.count),
            reset_at=entry.window_reset,
        )
