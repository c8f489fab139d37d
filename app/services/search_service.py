"""Semantic search and recommendations on top of vector context lookups."""

from __future__ import annotations

import time

from app.adapters.vector.base import VectorMatch
from app.schemas.search import SearchFilters, SearchQuery, SearchResponse, SearchResult
from app.services.vector_search_service import VectorSearchService

DEFAULT_MIN_SCORE = 0.5
RECOMMENDATION_MIN_SCORE = 0.65
RECOMMENDATION_INDEXES = ("content", "products")
HIGHLIGHT_MAX_CHARS = 200


def build_highlight(text: str, query: str, max_chars: int = HIGHLIGHT_MAX_CHARS) -> str:
    """Snippet around the first case-insensitive occurrence of ``query``.

    Falls back to the beginning of the text when the query does not occur.
    """

    position = text.lower().find(query.lower())
    if position == -1:
        return text[:max_chars] + ("..." if len(text) > max_chars else "")

    start = max(0, position - 50)
    end = min(len(text), position + len(query) + 150)
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet


class SearchService:
    def __init__(self, vector_search: VectorSearchService) -> None:
        self.vector_search = vector_search

    def _to_result(self, match: VectorMatch, query: str, include_metadata: bool) -> SearchResult:
        metadata = match["metadata"]
        text = str(metadata.get("text", ""))
        return SearchResult(
            id=match["id"],
            text=text,
            score=match["score"],
            type=metadata.get("type"),
            category=metadata.get("category"),
            url=metadata.get("url"),
            metadata=metadata if include_metadata else None,
            highlight=build_highlight(text, query),
        )

    async def search(self, search_query: SearchQuery) -> SearchResponse:
        """Search across indexes, then filter by type/category and truncate."""

        started = time.perf_counter()
        filters = search_query.filters
        min_score = filters.min_score if filters.min_score is not None else DEFAULT_MIN_SCORE

        # Over-fetch so post-filtering still fills the page.
        matches = await self.vector_search.get_relevant_context(
            search_query.query,
            max_chunks=search_query.limit * 2,
            min_score=min_score,
            indexes=filters.index_types,
        )

        if filters.type:
            matches = [m for m in matches if m["metadata"].get("type") == filters.type]
        if filters.category:
            matches = [m for m in matches if m["metadata"].get("category") == filters.category]

        results = [
            self._to_result(match, search_query.query, search_query.include_metadata)
            for match in matches[: search_query.limit]
        ]
        return SearchResponse(
            query=search_query.query,
            results=results,
            total=len(results),
            took_ms=int((time.perf_counter() - started) * 1000),
        )

    async def get_recommendations(self, query: str, limit: int = 5) -> list[SearchResult]:
        indexes = [name for name in RECOMMENDATION_INDEXES if name in self.vector_search.index_names]
        response = await self.search(
            SearchQuery(
                query=query,
                limit=limit,
                filters=SearchFilters(min_score=RECOMMENDATION_MIN_SCORE, index_types=indexes or None),
            )
        )
        return response.results
