"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.rate_limit.base import LIMIT_EXCEEDED, RateLimitResult
from app.core.errors import (
    AppError,
    CrawlAppError,
    LLMAppError,
    RateLimitExceededError,
    StorageAppError,
    ValidationAppError,
    VectorAppError,
)
from app.core.exception_handlers import setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400."""
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(code="invalid_crawl_url", message="Only http(s) URLs can be crawled")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "invalid_crawl_url"
        assert data["error"]["message"] == "Only http(s) URLs can be crawled"
        assert "request_id" in data["error"]

    def test_validation_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation-details")
        async def test_endpoint():
            raise ValidationAppError(
                code="unknown_index",
                message="Unknown index 'nope'",
                details={"index_name": "nope", "hint": "Use one of: profile, content, products"},
            )

        response = client.get("/test-validation-details")

        assert response.status_code == 400
        assert response.json()["error"]["details"]["index_name"] == "nope"

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (LLMAppError(code="llm_request_failed", message="LLM provider error"), 502),
            (VectorAppError(code="vector_query_failed", message="Vector index query failed"), 502),
            (CrawlAppError(code="crawl_failed", message="Failed to fetch"), 502),
            (StorageAppError(code="storage_unavailable", message="Partition storage get failed"), 503),
            (AppError(code="generic", message="Generic failure"), 400),
        ],
    )
    def test_upstream_errors_map_to_status(
        self, client: TestClient, app_with_handlers: FastAPI, error: AppError, status_code: int
    ):
        @app_with_handlers.get("/test-upstream")
        async def test_endpoint():
            raise error

        response = client.get("/test-upstream")

        assert response.status_code == status_code
        assert response.json()["error"]["code"] == error.code


class TestRateLimitHandler:
    def _raise(self, app: FastAPI, result: RateLimitResult) -> None:
        @app.get("/test-rate-limit")
        async def test_endpoint():
            raise RateLimitExceededError("crawl", result)

    def test_returns_429_with_retry_after(self, client: TestClient, app_with_handlers: FastAPI):
        self._raise(
            app_with_handlers,
            RateLimitResult(
                allowed=False,
                limit=10,
                remaining=0,
                reset_at=1_700_000_060_500,
                retry_after_seconds=30,
                blocked=True,
                reason=LIMIT_EXCEEDED,
            ),
        )

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"
        assert response.headers["X-RateLimit-Reset"] == "1700000060"
        body = response.json()
        assert body["bucket"] == "crawl"
        assert body["retryAfter"] == 30
        assert body["kind"] == "soft"

    def test_headers_can_be_disabled(self, client: TestClient, app_with_handlers: FastAPI):
        self._raise(
            app_with_handlers,
            RateLimitResult(allowed=False, limit=10, remaining=0, reset_at=0, retry_after_seconds=5, blocked=True),
        )

        with patch("app.core.exception_handlers.settings") as mock_settings:
            mock_settings.app.rate_limit_include_headers = False
            response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "5"
        assert "X-RateLimit-Limit" not in response.headers


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_never_leaks_details(self):
        """Verify stack traces and messages are never included in response."""
        from app.core.exception_handlers import general_exception_handler

        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("redis://secret-host:6379 refused connection")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "secret-host" not in json.dumps(data)
        assert "RuntimeError" not in json.dumps(data)


class TestErrorHandlerIntegration:
    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        assert RateLimitExceededError in app_with_handlers.exception_handlers
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers
