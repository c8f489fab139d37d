"""Service container and FastAPI dependency providers.

Stores and services are built once per application by ``build_services``
and attached to ``app.state.services``. Nothing here is a module global, so
every app instance (and every test) starts from clean rate limit and cache
state; ``AppServices.reset_state`` clears it in place.
"""

from __future__ import annotations

from dataclasses import dataclass

import redis.asyncio as redis
from fastapi import Request

from app.adapters.crawler.base import AbstractCrawler
from app.adapters.crawler.http_crawler import HttpCrawler
from app.adapters.llm.factory import create_llm_client
from app.adapters.storage.in_memory import InMemoryKeyedStore
from app.adapters.storage.partitions import PartitionStoreFactory
from app.adapters.vector.factory import create_embedder, create_vector_index
from app.core.config import Settings, settings
from app.services.chat_service import ChatService
from app.services.search_service import SearchService
from app.services.traffic_shaping import TrafficShaper, store_backed_limiter_factory
from app.services.vector_search_service import VectorSearchService
from app.utils.result_cache import ResultCache


@dataclass
class AppServices:
    """Everything the routes need, wired together."""

    traffic: TrafficShaper
    rate_limit_store: InMemoryKeyedStore
    vector_cache: ResultCache
    vector_search: VectorSearchService
    search: SearchService
    chat: ChatService
    crawler: AbstractCrawler
    redis_client: redis.Redis | None = None

    async def reset_state(self) -> None:
        """Forget all process-local rate limit and cache state."""

        self.rate_limit_store.clear()
        await self.vector_cache.clear()

    async def aclose(self) -> None:
        await self.crawler.aclose()
        await self.vector_search.index.aclose()
        if self.redis_client is not None:
            await self.redis_client.aclose()


def build_services(cfg: Settings | None = None) -> AppServices:
    """Wire adapters and services from configuration."""

    cfg = cfg or settings

    redis_client = redis.from_url(cfg.app.redis_url) if cfg.app.redis_url else None

    rate_limit_store = InMemoryKeyedStore(max_entries=cfg.app.rate_limit_store_max_entries)
    partitions = PartitionStoreFactory(
        fallback=rate_limit_store,
        redis_client=redis_client,
        key_prefix=cfg.app.redis_key_prefix,
    )
    traffic = TrafficShaper(
        store_backed_limiter_factory(partitions),
        cfg.app.rate_limit_policies,
        enabled=cfg.app.rate_limit_enabled,
    )

    vector_cache = ResultCache(
        InMemoryKeyedStore(max_entries=cfg.vector.cache_max_entries),
        ttl_seconds=cfg.vector.cache_ttl_seconds,
        max_entries=cfg.vector.cache_max_entries,
        enabled=cfg.vector.cache_enabled,
    )
    vector_search = VectorSearchService(
        create_embedder(cfg),
        create_vector_index(cfg),
        vector_cache,
        index_names=cfg.vector.index_names,
    )
    chat = ChatService(
        create_llm_client(cfg.llm),
        vector_search,
        system_prompt=cfg.llm.system_prompt,
        context_max_chunks=cfg.vector.context_max_chunks,
        context_min_score=cfg.vector.context_min_score,
        history_max_messages=cfg.app.chat_history_max_messages,
    )

    return AppServices(
        traffic=traffic,
        rate_limit_store=rate_limit_store,
        vector_cache=vector_cache,
        vector_search=vector_search,
        search=SearchService(vector_search),
        chat=chat,
        crawler=HttpCrawler(default_max_chars=cfg.app.crawl_max_chars),
        redis_client=redis_client,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_vector_search(request: Request) -> VectorSearchService:
    return get_services(request).vector_search


def get_search_service(request: Request) -> SearchService:
    return get_services(request).search


def get_crawler(request: Request) -> AbstractCrawler:
    return get_services(request).crawler
