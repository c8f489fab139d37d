"""Rate limiting adapters.

This package provides a small abstraction layer so limits can be enforced
against a process-local store or a durable per-partition store without
changing the traffic-shaping or API layers.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.penalty_window import PenaltyWindowRateLimiter, RateLimitEntry

__all__ = [
    "AbstractRateLimiter",
    "PenaltyWindowRateLimiter",
    "RateLimitEntry",
    "RateLimitResult",
]
