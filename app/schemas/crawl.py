"""Pydantic schemas for the crawl endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.adapters.crawler.base import CrawlOptions, CrawlResult


class CrawlRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    options: CrawlOptions = Field(default_factory=CrawlOptions)


class CrawlResponse(BaseModel):
    success: bool = True
    result: CrawlResult
