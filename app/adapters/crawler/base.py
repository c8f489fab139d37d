"""Crawler interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class CrawlOptions(BaseModel):
    """Per-request crawl options."""

    max_chars: int | None = Field(None, ge=1, description="Truncate extracted text")
    include_html: bool = Field(False, description="Return the raw HTML as well")


class CrawlResult(BaseModel):
    url: str
    status_code: int
    title: str | None = None
    text: str = ""
    truncated: bool = False
    links: list[str] = Field(default_factory=list)
    html: str | None = None


class AbstractCrawler(ABC):
    @abstractmethod
    async def crawl(self, url: str, options: CrawlOptions | None = None) -> CrawlResult:
        """Fetch ``url`` and extract its readable content.

        Raises:
            CrawlAppError: If the page cannot be fetched.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources; no-op by default."""
