from fastapi import APIRouter, Depends

from app.api.dependencies import get_search_service
from app.core.rate_limit import rate_limit
from app.schemas.search import (
    RecommendationsRequest,
    RecommendationsResponse,
    SearchQuery,
    SearchResponse,
)
from app.services.search_service import SearchService

router = APIRouter(tags=["Search"])


@router.post(
    "/search",
    response_model=SearchResponse,
    dependencies=[Depends(rate_limit("search"))],
)
async def search(
    body: SearchQuery,
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """Semantic search across the configured indexes.

    Results come from the cached cross-index context lookup, then get
    filtered by type/category and decorated with a highlight snippet.
    """
    return await service.search(body)


@router.post(
    "/recommendations",
    response_model=RecommendationsResponse,
    dependencies=[Depends(rate_limit("recommendations"))],
)
async def recommendations(
    body: RecommendationsRequest,
    service: SearchService = Depends(get_search_service),
) -> RecommendationsResponse:
    results = await service.get_recommendations(body.query, body.limit)
    return RecommendationsResponse(query=body.query, recommendations=results)
