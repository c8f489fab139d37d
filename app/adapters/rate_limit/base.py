"""Rate limiter interfaces.

The traffic-shaping layer depends on this abstraction (not the concrete
implementation) so limits can be enforced against any keyed store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

# Denial reasons
LIMIT_EXCEEDED = "limit_exceeded"
PENALTY_ACTIVE = "penalty_active"


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a consume operation.

    Attributes:
        allowed: Whether the unit of work may proceed.
        limit: Max units per window.
        remaining: Units left in the current window (never negative).
        reset_at: Epoch milliseconds when the current window resets.
        retry_after_seconds: Seconds to wait before retrying (denials only),
            always rounded up.
        blocked: True for every denial caused by the penalty window.
        reason: ``limit_exceeded`` when this call tipped the identifier over
            the limit and started the penalty, ``penalty_active`` when the
            penalty was already running. None when allowed.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None = None
    blocked: bool = False
    reason: str | None = None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def consume(
        self,
        identifier: str,
        *,
        limit: int,
        window_ms: int,
        block_duration_ms: int | None = None,
    ) -> RateLimitResult:
        """Consume one unit of budget for ``identifier``.

        Args:
            identifier: Unique identifier (e.g. ``search:203.0.113.7``).
            limit: Maximum units per window.
            window_ms: Window length in milliseconds.
            block_duration_ms: Penalty applied when the limit is exceeded;
                defaults to half the window.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError
