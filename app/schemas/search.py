"""Pydantic schemas for search, recommendation and vector endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class SearchFilters(BaseModel):
    type: str | None = Field(None, description="Only return chunks of this metadata type.")
    category: str | None = Field(None, description="Only return chunks of this category.")
    min_score: float | None = Field(None, alias="minScore", ge=0.0, le=1.0)
    index_types: List[str] | None = Field(
        None,
        alias="indexTypes",
        description="Indexes to search (defaults to all configured indexes).",
    )

    model_config = {"populate_by_name": True}


class SearchQuery(BaseModel):
    query: str = Field(..., min_length=1, max_length=2000)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    limit: int = Field(10, ge=1, le=50)
    include_metadata: bool = Field(True, alias="includeMetadata")

    model_config = {"populate_by_name": True}


class SearchResult(BaseModel):
    id: str
    text: str
    score: float
    type: str | None = None
    category: str | None = None
    url: str | None = None
    metadata: Dict[str, Any] | None = None
    highlight: str | None = None


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
    total: int
    took_ms: int = Field(..., alias="took")

    model_config = {"populate_by_name": True}


class RecommendationsRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=2000)
    limit: int = Field(5, ge=1, le=20)


class RecommendationsResponse(BaseModel):
    success: bool = True
    query: str
    recommendations: List[SearchResult]


class VectorQueryRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=2000)
    index_type: str = Field("profile", alias="indexType")
    top_k: int = Field(5, alias="topK", ge=1, le=50)
    filter: Dict[str, Any] | None = None

    model_config = {"populate_by_name": True}


class VectorMatchModel(BaseModel):
    id: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)


class VectorQueryResponse(BaseModel):
    success: bool = True
    query: str
    index_type: str = Field(..., alias="indexType")
    results: List[VectorMatchModel]

    model_config = {"populate_by_name": True}


class VectorSearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=2000)
    top_k: int = Field(5, alias="topK", ge=1, le=50)
    min_score: float = Field(0.7, alias="minScore", ge=0.0, le=1.0)

    model_config = {"populate_by_name": True}


class VectorSearchResponse(BaseModel):
    success: bool = True
    query: str
    context: List[VectorMatchModel]


class SeedDocument(BaseModel):
    id: str = Field(..., min_length=1)
    index: str = Field(..., description="Target index name.")
    text: str = Field(..., min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SeedRequest(BaseModel):
    documents: List[SeedDocument] = Field(..., min_length=1, max_length=2000)


class SeedResponse(BaseModel):
    success: bool
    upserted: int
    failed: int
    message: str
