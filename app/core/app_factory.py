"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
services) so tests can build isolated apps with fake collaborators.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.dependencies import AppServices, build_services
from app.api.routes import chat_router, crawl_router, health_router, search_router, vectorize_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations


def create_app(services: AppServices | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        services: Pre-built service container; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.services.aclose()

    app = FastAPI(
        title="EdgeChat API",
        description=(
            "Retrieval-augmented chat assistant API: semantic search, "
            "recommendations, vector index access, page crawling and a chat "
            "room WebSocket. Expensive operations are rate limited per client "
            "with a penalty window; denials return HTTP 429 with a numeric "
            "retryAfter countdown."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    app.state.services = services or build_services()

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(search_router, prefix="/api")
    app.include_router(vectorize_router, prefix="/api")
    app.include_router(crawl_router, prefix="/api")
    app.include_router(chat_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
