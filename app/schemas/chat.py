"""WebSocket chat frame schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ChatTurnFrame(BaseModel):
    """Inbound frame asking the assistant for a reply."""

    type: Literal["chat"] = "chat"
    content: str = Field(..., min_length=1, max_length=8000)
    model: str | None = None


class ChatChunkFrame(BaseModel):
    type: Literal["chunk"] = "chunk"
    content: str


class ChatDoneFrame(BaseModel):
    type: Literal["done"] = "done"
    content: str
    sources: list[str] = Field(default_factory=list)


class ChatErrorFrame(BaseModel):
    type: Literal["error"] = "error"
    code: str
    message: str
    retry_after: int | None = Field(None, serialization_alias="retryAfter")
    reason: str | None = None
    kind: str | None = None
