"""Embeddings via the OpenAI SDK."""

from typing import Sequence

from openai import AsyncOpenAI, OpenAIError

from app.adapters.vector.base import AbstractEmbedder
from app.core.errors import VectorAppError


class OpenAIEmbedder(AbstractEmbedder):
    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 15.0,
    ) -> None:
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_seconds)
        self.model = model

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = await self.client.embeddings.create(model=self.model, input=list(texts))
        except OpenAIError as exc:
            raise VectorAppError(
                code="embedding_failed",
                message=f"Failed to generate embedding: {exc}",
                details={"model": self.model},
            ) from exc

        # The API may return items out of order; ``index`` is authoritative.
        ordered = sorted(response.data, key=lambda item: item.index)
        if len(ordered) != len(texts):
            raise VectorAppError(
                code="embedding_invalid_response",
                message="Embedding response size does not match input size",
                details={"model": self.model},
            )
        return [list(item.embedding) for item in ordered]
