"""OpenAPI customization.

Adds tag descriptions and documents the 429 response on every
rate-limited operation, so clients know to read ``retryAfter`` instead of
treating a denial as a generic failure.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.schemas.rate_limit import RateLimitErrorResponse

_TAGS = [
    {"name": "Search", "description": "Semantic search and recommendations."},
    {"name": "Vectorize", "description": "Direct vector index queries and seeding."},
    {"name": "Crawl", "description": "Fetch a page and extract readable text."},
    {"name": "Chat", "description": "Chat room WebSocket (documented here for reference only)."},
    {"name": "Health", "description": "Liveness checks."},
]

_RATE_LIMITED_PREFIXES = ("/api/",)


def _rate_limit_response() -> Dict[str, Any]:
    return {
        "description": "Rate limit exceeded. Retry after the number of seconds in `retryAfter`.",
        "headers": {
            "Retry-After": {
                "description": "Seconds until a retry can succeed.",
                "schema": {"type": "integer"},
            }
        },
        "content": {
            "application/json": {"schema": {"$ref": "#/components/schemas/RateLimitErrorResponse"}}
        },
    }


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with tags and the 429 response."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = original_openapi()

        components = schema.setdefault("components", {})
        component_schemas = components.setdefault("schemas", {})
        component_schemas.setdefault(
            "RateLimitErrorResponse",
            RateLimitErrorResponse.model_json_schema(by_alias=True),
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith(_RATE_LIMITED_PREFIXES):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {})["429"] = _rate_limit_response()

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
