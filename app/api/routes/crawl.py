from fastapi import APIRouter, Depends

from app.adapters.crawler.base import AbstractCrawler
from app.api.dependencies import get_crawler
from app.core.rate_limit import rate_limit
from app.schemas.crawl import CrawlRequest, CrawlResponse

router = APIRouter(tags=["Crawl"])


@router.post(
    "/crawl",
    response_model=CrawlResponse,
    dependencies=[Depends(rate_limit("crawl"))],
)
async def crawl(
    body: CrawlRequest,
    crawler: AbstractCrawler = Depends(get_crawler),
) -> CrawlResponse:
    """Fetch a page and return its readable text.

    Crawling hits third-party sites on the caller's behalf, so the bucket is
    small and fails closed when the limiter storage is down.
    """
    result = await crawler.crawl(body.url, body.options)
    return CrawlResponse(result=result)
