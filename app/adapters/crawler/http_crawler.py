"""Fetch pages with httpx and extract readable text with trafilatura."""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin

import httpx
import trafilatura

from app.adapters.crawler.base import AbstractCrawler, CrawlOptions, CrawlResult
from app.core.errors import CrawlAppError, ValidationAppError

logger = logging.getLogger(__name__)

_REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; EdgeChatCrawler/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

_HREF_RE = re.compile(r"""<a\s[^>]*?href=["']([^"'#]+)["']""", re.IGNORECASE)
MAX_LINKS = 50


def extract_links(html: str, base_url: str, limit: int = MAX_LINKS) -> list[str]:
    """Absolute http(s) link targets in document order, deduplicated."""

    links: list[str] = []
    for href in _HREF_RE.findall(html):
        absolute = urljoin(base_url, href.strip())
        if absolute.startswith(("http://", "https://")) and absolute not in links:
            links.append(absolute)
            if len(links) >= limit:
                break
    return links


class HttpCrawler(AbstractCrawler):
    def __init__(
        self,
        *,
        default_max_chars: int = 5000,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._default_max_chars = default_max_chars
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers=_REQUEST_HEADERS,
            follow_redirects=True,
        )

    async def crawl(self, url: str, options: CrawlOptions | None = None) -> CrawlResult:
        options = options or CrawlOptions()
        if not url.startswith(("http://", "https://")):
            raise ValidationAppError(
                code="invalid_crawl_url",
                message="Only http(s) URLs can be crawled",
                details={"url": url},
            )

        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "crawl.fetch_failed",
                extra={"url": url, "error_type": type(exc).__name__},
            )
            raise CrawlAppError(
                code="crawl_failed",
                message=f"Failed to fetch {url}",
                details={"url": url},
            ) from exc

        html = response.text
        text = trafilatura.extract(html, url=url, include_comments=False) or ""
        metadata = trafilatura.extract_metadata(html)
        title = metadata.title if metadata is not None else None

        max_chars = options.max_chars or self._default_max_chars
        truncated = len(text) > max_chars

        return CrawlResult(
            url=str(response.url),
            status_code=response.status_code,
            title=title,
            text=text[:max_chars],
            truncated=truncated,
            links=extract_links(html, str(response.url)),
            html=html if options.include_html else None,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
