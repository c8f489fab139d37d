"""Embedding and vector index interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence, TypedDict


class VectorMatch(TypedDict):
    """One query hit, JSON-compatible so it can be cached as-is."""

    id: str
    score: float
    metadata: dict[str, Any]


class VectorRecord(TypedDict):
    id: str
    values: list[float]
    metadata: dict[str, Any]


class AbstractEmbedder(ABC):
    """Turns text into embedding vectors."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        raise NotImplementedError

    @abstractmethod
    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        raise NotImplementedError


class AbstractVectorIndex(ABC):
    """Similarity search over named indexes."""

    @abstractmethod
    async def query(
        self,
        index_name: str,
        vector: Sequence[float],
        *,
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Return the ``top_k`` nearest matches, best first.

        Raises:
            VectorAppError: If the index call fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, index_name: str, records: Sequence[VectorRecord]) -> int:
        """Insert or replace records; returns the number written."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources; no-op by default."""
