from __future__ import annotations

from app.api.routes.chat import router as chat_router
from app.api.routes.crawl import router as crawl_router
from app.api.routes.health import router as health_router
from app.api.routes.search import router as search_router
from app.api.routes.vectorize import router as vectorize_router

__all__ = ["chat_router", "crawl_router", "health_router", "search_router", "vectorize_router"]
