from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check for load balancers and monitoring.

    Also reports which backend holds partition state and the vector cache
    counters, which helps when tuning TTLs.
    """

    services = request.app.state.services
    return {
        "status": "ok",
        "partition_storage": "redis" if services.redis_client is not None else "memory",
        "vector_cache": services.vector_cache.stats(),
    }
