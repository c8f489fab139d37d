"""Traffic shaping: per-bucket rate limit policies in front of expensive work.

Every externally triggerable expensive operation (chat turns, calendar
mutations, search, crawl, vector seeding) names a bucket. The bucket's
``RateLimitPolicy`` decides limit, window, penalty and what happens when
the limiter storage is down.

Partitioned callers (a chat room, a user session) pass a ``partition`` and
get a limiter over that partition's own store; stateless HTTP handlers pass
none and share the process-local store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from app.adapters.rate_limit.base import (
    LIMIT_EXCEEDED,
    PENALTY_ACTIVE,
    AbstractRateLimiter,
    RateLimitResult,
)
from app.adapters.rate_limit.penalty_window import PenaltyWindowRateLimiter, epoch_ms
from app.adapters.storage.partitions import PartitionStoreFactory
from app.core.config import RateLimitPolicy
from app.core.errors import RateLimitExceededError, StorageAppError, ValidationAppError
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)

# Denial kinds surfaced to clients
SOFT = "soft"
HARD = "hard"


@dataclass(frozen=True)
class RateLimitDecision:
    """A limiter result bound to the bucket it was taken against."""

    bucket: str
    result: RateLimitResult
    degraded: bool = False

    @property
    def allowed(self) -> bool:
        return self.result.allowed

    @property
    def retry_after_seconds(self) -> int:
        return self.result.retry_after_seconds or 0

    @property
    def kind(self) -> str | None:
        """``soft`` when this request tripped the limit, ``hard`` during an active penalty."""

        if self.result.allowed:
            return None
        return HARD if self.result.reason == PENALTY_ACTIVE else SOFT

    def to_payload(self) -> dict[str, Any]:
        """Machine-readable denial body (the HTTP 429 / WebSocket error shape)."""

        return {
            "error": "Rate limit exceeded",
            "bucket": self.bucket,
            "retryAfter": self.retry_after_seconds,
            "reason": self.result.reason or LIMIT_EXCEEDED,
            "kind": self.kind,
            "blocked": self.result.blocked,
        }

    def countdown_message(self) -> str:
        seconds = self.retry_after_seconds
        unit = "second" if seconds == 1 else "seconds"
        if self.kind == HARD:
            return f"Too many requests. You are temporarily blocked, try again in {seconds} {unit}."
        return f"Slow down! Try again in {seconds} {unit}."


LimiterFactory = Callable[[str | None], AbstractRateLimiter]


def store_backed_limiter_factory(
    stores: PartitionStoreFactory,
    *,
    clock: Callable[[], int] = epoch_ms,
) -> LimiterFactory:
    """Build limiters over the partition store (or the shared fallback)."""

    def _factory(partition: str | None) -> AbstractRateLimiter:
        return PenaltyWindowRateLimiter(stores.for_partition(partition), clock=clock)

    return _factory


class TrafficShaper:
    """Apply bucket policies through a rate limiter.

    The shaper owns no counter state itself; it is safe to share one instance
    across the whole application.
    """

    def __init__(
        self,
        limiter_factory: LimiterFactory,
        policies: Mapping[str, RateLimitPolicy],
        *,
        enabled: bool = True,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self._limiter_factory = limiter_factory
        self._policies = dict(policies)
        self._enabled = enabled
        self._clock = clock
        self._shared_limiter = limiter_factory(None)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def policy(self, bucket: str) -> RateLimitPolicy:
        try:
            return self._policies[bucket]
        except KeyError:
            raise ValidationAppError(
                code="unknown_rate_limit_bucket",
                message=f"No rate limit policy configured for bucket '{bucket}'",
                details={"bucket": bucket},
            ) from None

    def _allow(self, bucket: str, policy: RateLimitPolicy, *, degraded: bool = False) -> RateLimitDecision:
        result = RateLimitResult(
            allowed=True,
            limit=policy.limit,
            remaining=policy.limit,
            reset_at=self._clock() + policy.window_seconds * 1000,
        )
        return RateLimitDecision(bucket=bucket, result=result, degraded=degraded)

    async def check(
        self,
        bucket: str,
        identifier: str,
        *,
        partition: str | None = None,
    ) -> RateLimitDecision:
        """Consume one unit of ``bucket`` for ``identifier``.

        Args:
            bucket: Policy name (``search``, ``chat-turn``...).
            identifier: Client identifier (IP, connection id, user id).
            partition: Durable partition owning the counter, if any.

        Returns:
            RateLimitDecision; denials are values, not exceptions.

        Raises:
            ValidationAppError: If the bucket has no policy.
            StorageAppError: If storage fails and the bucket fails closed.
        """
        policy = self.policy(bucket)
        if not self._enabled:
            return self._allow(bucket, policy)

        key = f"{bucket}:{identifier}"
        if partition is not None:
            key = f"{partition}:{key}"
        limiter = self._shared_limiter if partition is None else self._limiter_factory(partition)

        try:
            result = await limiter.consume(
                key,
                limit=policy.limit,
                window_ms=policy.window_seconds * 1000,
                block_duration_ms=(
                    policy.block_seconds * 1000 if policy.block_seconds is not None else None
                ),
            )
        except StorageAppError:
            if not policy.fail_open:
                logger.error(
                    "rate_limit.storage_failed_closed",
                    extra={"bucket": bucket, "partition": partition},
                )
                raise
            logger.warning(
                "rate_limit.storage_failed_open",
                extra={"bucket": bucket, "partition": partition},
            )
            return self._allow(bucket, policy, degraded=True)

        decision = RateLimitDecision(bucket=bucket, result=result)
        log_fields = {
            "bucket": bucket,
            "client_hash": hash_identifier(identifier),
            "limit": result.limit,
            "remaining": result.remaining,
        }
        if decision.allowed:
            logger.debug("rate_limit.allowed", extra=log_fields)
        else:
            logger.warning(
                "rate_limit.denied",
                extra={
                    **log_fields,
                    "kind": decision.kind,
                    "retry_after_s": decision.retry_after_seconds,
                },
            )
        return decision

    async def enforce(
        self,
        bucket: str,
        identifier: str,
        *,
        partition: str | None = None,
    ) -> RateLimitDecision:
        """Like :meth:`check`, but raise ``RateLimitExceededError`` on denial."""

        decision = await self.check(bucket, identifier, partition=partition)
        if not decision.allowed:
            raise RateLimitExceededError(bucket, decision.result)
        return decision
