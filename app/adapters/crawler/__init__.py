"""Page crawling adapters."""

from app.adapters.crawler.base import AbstractCrawler, CrawlOptions, CrawlResult
from app.adapters.crawler.http_crawler import HttpCrawler

__all__ = ["AbstractCrawler", "CrawlOptions", "CrawlResult", "HttpCrawler"]
