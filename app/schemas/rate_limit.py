"""Schema of the 429 response body (documentation only)."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitErrorResponse(BaseModel):
    error: str = Field("Rate limit exceeded", description="Human-readable summary.")
    bucket: str = Field(..., description="Rate limit bucket that denied the request.")
    retry_after: int = Field(..., alias="retryAfter", description="Seconds until a retry can succeed.")
    reason: str = Field(
        ...,
        description="limit_exceeded (this request started a penalty) or penalty_active.",
    )
    kind: str = Field(..., description="soft (limit just exceeded) or hard (penalty running).")
    blocked: bool = True
    request_id: str | None = None
