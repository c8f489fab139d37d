from fastapi import APIRouter, Depends

from app.api.dependencies import get_vector_search
from app.core.rate_limit import rate_limit
from app.schemas.search import (
    SeedRequest,
    SeedResponse,
    VectorQueryRequest,
    VectorQueryResponse,
    VectorSearchRequest,
    VectorSearchResponse,
)
from app.services.vector_search_service import VectorSearchService

router = APIRouter(prefix="/vectorize", tags=["Vectorize"])


@router.post(
    "/query",
    response_model=VectorQueryResponse,
    dependencies=[Depends(rate_limit("vectorize-query"))],
)
async def query_index(
    body: VectorQueryRequest,
    service: VectorSearchService = Depends(get_vector_search),
) -> VectorQueryResponse:
    """Query a single index (results cached for a short TTL)."""
    results = await service.query(body.index_type, body.query, top_k=body.top_k, filter=body.filter)
    return VectorQueryResponse(query=body.query, index_type=body.index_type, results=results)


@router.post(
    "/search",
    response_model=VectorSearchResponse,
    dependencies=[Depends(rate_limit("vectorize-search"))],
)
async def search_indexes(
    body: VectorSearchRequest,
    service: VectorSearchService = Depends(get_vector_search),
) -> VectorSearchResponse:
    """Best matches across every index (results cached for a short TTL)."""
    context = await service.get_relevant_context(body.query, max_chunks=body.top_k, min_score=body.min_score)
    return VectorSearchResponse(query=body.query, context=context)


@router.post(
    "/seed",
    response_model=SeedResponse,
    dependencies=[Depends(rate_limit("vectorize-seed"))],
)
async def seed_indexes(
    body: SeedRequest,
    service: VectorSearchService = Depends(get_vector_search),
) -> SeedResponse:
    """Embed and upsert documents. Heavily rate limited: a seed re-embeds everything."""
    upserted, failed = await service.seed(body.documents)
    return SeedResponse(
        success=failed == 0,
        upserted=upserted,
        failed=failed,
        message=f"Upserted {upserted} documents ({failed} failed)",
    )
