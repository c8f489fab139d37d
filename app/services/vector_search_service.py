"""Vector search with a short-lived result cache.

Single-index queries and cross-index context lookups are memoized for a few
tens of seconds: chat turns and search requests tend to arrive in bursts of
identical queries, and each miss costs an embedding call plus one index
query per index.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from app.adapters.vector.base import AbstractEmbedder, AbstractVectorIndex, VectorMatch, VectorRecord
from app.core.errors import ValidationAppError, VectorAppError
from app.schemas.search import SeedDocument
from app.utils.cache_keys import build_cache_key
from app.utils.result_cache import ResultCache

logger = logging.getLogger(__name__)

SEED_BATCH_SIZE = 100


class VectorSearchService:
    """Embedding + index queries behind a ``ResultCache``."""

    def __init__(
        self,
        embedder: AbstractEmbedder,
        index: AbstractVectorIndex,
        cache: ResultCache,
        *,
        index_names: Sequence[str] = ("profile", "content", "products"),
    ) -> None:
        self.embedder = embedder
        self.index = index
        self.cache = cache
        self.index_names = tuple(index_names)

    def _check_index(self, index_name: str) -> None:
        if index_name not in self.index_names:
            raise ValidationAppError(
                code="unknown_index",
                message=f"Unknown index '{index_name}'",
                details={"index_name": index_name, "hint": f"Use one of: {', '.join(self.index_names)}"},
            )

    async def query(
        self,
        index_name: str,
        text: str,
        *,
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
        min_score: float = 0.0,
    ) -> list[VectorMatch]:
        """Query one index, returning matches scoring at least ``min_score``."""

        self._check_index(index_name)

        cache_key = build_cache_key("query", index_name, text, top_k, min_score, filter)
        if cache_key is not None:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return cached

        vector = await self.embedder.embed(text)
        matches = await self.index.query(index_name, vector, top_k=top_k, filter=filter)
        results = [match for match in matches if match["score"] >= min_score]

        if cache_key is not None:
            await self.cache.set(cache_key, results)
        return results

    async def query_all(
        self,
        text: str,
        *,
        top_k: int = 5,
        min_score: float = 0.0,
        indexes: Sequence[str] | None = None,
    ) -> dict[str, list[VectorMatch]]:
        """Query several indexes concurrently."""

        names = list(indexes or self.index_names)
        results = await asyncio.gather(
            *(self.query(name, text, top_k=top_k, min_score=min_score) for name in names)
        )
        return dict(zip(names, results))

    async def get_relevant_context(
        self,
        text: str,
        *,
        max_chunks: int = 5,
        min_score: float = 0.7,
        indexes: Sequence[str] | None = None,
    ) -> list[VectorMatch]:
        """Best ``max_chunks`` matches across indexes, highest score first."""

        names = list(indexes or self.index_names)
        cache_key = build_cache_key("context", text, max_chunks, min_score, names)
        if cache_key is not None:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return cached

        by_index = await self.query_all(text, top_k=max_chunks, min_score=min_score, indexes=names)
        merged = [match for name in names for match in by_index[name]]
        merged.sort(key=lambda match: match["score"], reverse=True)
        top_results = merged[:max_chunks]

        if cache_key is not None:
            await self.cache.set(cache_key, top_results)
        return top_results

    async def seed(self, documents: Sequence[SeedDocument]) -> tuple[int, int]:
        """Embed and upsert documents, batch by batch.

        A failing batch is counted and skipped so one bad batch does not lose
        the rest of the seed.

        Returns:
            Tuple of (upserted, failed) document counts.
        """

        for document in documents:
            self._check_index(document.index)

        by_index: dict[str, list[SeedDocument]] = {}
        for document in documents:
            by_index.setdefault(document.index, []).append(document)

        upserted = 0
        failed = 0
        for index_name, docs in by_index.items():
            for start in range(0, len(docs), SEED_BATCH_SIZE):
                batch = docs[start : start + SEED_BATCH_SIZE]
                try:
                    vectors = await self.embedder.embed_batch([doc.text for doc in batch])
                    records = [
                        VectorRecord(id=doc.id, values=vector, metadata={**doc.metadata, "text": doc.text})
                        for doc, vector in zip(batch, vectors)
                    ]
                    upserted += await self.index.upsert(index_name, records)
                except VectorAppError as exc:
                    failed += len(batch)
                    logger.error(
                        "vector.seed_batch_failed",
                        extra={"index_name": index_name, "batch_size": len(batch), "error_code": exc.code},
                    )

        logger.info("vector.seeded", extra={"upserted": upserted, "failed": failed})
        return upserted, failed
