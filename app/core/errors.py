"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.

Rate limit denials are ordinary values (``RateLimitResult``) inside the
traffic-shaping layer. ``RateLimitExceededError`` only exists so the HTTP
boundary can short-circuit a request from a FastAPI dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from app.adapters.rate_limit.base import RateLimitResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    bucket: str
    backend: str
    index_name: str
    model: str
    url: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class LLMAppError(AppError):
    """Raised when LLM provider/client operations fail."""


class VectorAppError(AppError):
    """Raised when embedding or vector index operations fail."""


class CrawlAppError(AppError):
    """Raised when fetching or parsing a crawled page fails."""


class StorageAppError(AppError):
    """Raised when the rate limit / cache storage backend is unreachable."""


class RateLimitExceededError(AppError):
    """Raised at the HTTP boundary when a bucket denies a request."""

    def __init__(self, bucket: str, result: "RateLimitResult") -> None:
        self.bucket = bucket
        self.result = result
        super().__init__(
            code="rate_limited",
            message="Rate limit exceeded",
            details={"bucket": bucket, "retry_after": result.retry_after_seconds or 0},
        )
