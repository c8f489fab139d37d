"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant for this website. Use the context provided "
    "below to give accurate, relevant answers. If the context does not cover "
    "the question, say so and give a general answer."
)


class RateLimitPolicy(BaseModel):
    """Per-bucket rate limit policy.

    ``block_seconds`` of None applies the default penalty of half a window.
    ``fail_open`` decides what happens when the limiter storage is down:
    allow the request (True) or refuse it (False).
    """

    limit: int = Field(..., ge=1)
    window_seconds: int = Field(..., ge=1)
    block_seconds: int | None = Field(None, ge=1)
    fail_open: bool = False


def _default_rate_limit_policies() -> dict[str, RateLimitPolicy]:
    return {
        "chat-turn": RateLimitPolicy(limit=20, window_seconds=60, block_seconds=30),
        "calendar-mutation": RateLimitPolicy(
            limit=60, window_seconds=60, block_seconds=10, fail_open=True
        ),
        "search": RateLimitPolicy(limit=45, window_seconds=60),
        "recommendations": RateLimitPolicy(limit=45, window_seconds=60),
        "vectorize-query": RateLimitPolicy(limit=60, window_seconds=60, block_seconds=60),
        "vectorize-search": RateLimitPolicy(limit=60, window_seconds=60, block_seconds=60),
        "crawl": RateLimitPolicy(limit=10, window_seconds=60),
        "vectorize-seed": RateLimitPolicy(limit=2, window_seconds=3600, block_seconds=3600),
    }


def _build_llm_settings() -> "LLMSettings":
    """Build LLM settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return LLMSettings()  # type: ignore[call-arg]


def _build_vector_settings() -> "VectorSettings":
    return VectorSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_llm_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LLMSettings(BaseSettings):
    """LLM provider configuration.

    Requests are normally routed through an upstream AI gateway (``base_url``)
    which deduplicates identical completions using the cache key header.
    """

    provider: str = Field(
        ...,
        description="LLM provider name (e.g., openai)",
    )
    model: str = Field(
        ...,
        description="Default chat model name (e.g., gpt-4o-mini)",
    )
    api_key: str | None = Field(
        None,
        description="API key for cloud providers (required for OpenAI)",
    )
    base_url: str | None = Field(
        None,
        description="Gateway or custom API endpoint in front of the provider",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )
    temperature: float = Field(
        0.7,
        description="Sampling temperature for chat turns",
    )
    max_tokens: int = Field(
        1024,
        description="Maximum completion tokens per chat turn",
    )
    gateway_cache_ttl_seconds: int = Field(
        3600,
        description="TTL requested from the upstream gateway cache",
    )
    gateway_cache_key_header: str = Field(
        "cf-aig-cache-key",
        description="Header carrying the derived gateway cache key",
    )
    gateway_cache_ttl_header: str = Field(
        "cf-aig-cache-ttl",
        description="Header carrying the gateway cache TTL",
    )
    system_prompt: str = Field(
        DEFAULT_SYSTEM_PROMPT,
        description="System prompt prepended to every chat turn",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class VectorSettings(BaseSettings):
    """Embedding model, vector index endpoint and query cache configuration."""

    embedding_model: str = Field(
        "text-embedding-3-small",
        description="Embedding model used for queries and seeding",
    )
    index_base_url: str | None = Field(
        None,
        description="Base URL of the REST vector index service",
    )
    api_token: str | None = Field(
        None,
        description="Bearer token for the vector index service",
    )
    timeout_seconds: float = Field(
        15.0,
        description="Vector index request timeout in seconds",
    )
    index_names: list[str] = Field(
        default_factory=lambda: ["profile", "content", "products"],
        description="Indexes searched by cross-index context lookups",
    )
    cache_enabled: bool = Field(
        True,
        description="Cache vector query results in-process",
    )
    cache_ttl_seconds: int = Field(
        45,
        description="TTL for cached vector query results",
        ge=1,
    )
    cache_max_entries: int = Field(
        256,
        description="Maximum number of cached vector query results",
        ge=1,
    )
    context_max_chunks: int = Field(
        5,
        description="Context chunks retrieved for each chat turn",
        ge=1,
    )
    context_min_score: float = Field(
        0.7,
        description="Minimum similarity score for chat context chunks",
    )

    model_config = SettingsConfigDict(
        env_prefix="VECTOR_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-bucket rate limiting",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )
    rate_limit_store_max_entries: int = Field(
        512,
        description="Maximum entries kept by the process-local rate limit store",
        ge=1,
    )
    rate_limit_policies: dict[str, RateLimitPolicy] = Field(
        default_factory=_default_rate_limit_policies,
        description="Rate limit policy per bucket (JSON object in env)",
    )
    redis_url: str | None = Field(
        None,
        description="Redis URL for durable per-partition state (chat rooms, sessions)",
    )
    redis_key_prefix: str = Field(
        "edgechat",
        description="Prefix for every key written to Redis",
    )
    chat_history_max_messages: int = Field(
        20,
        description="Messages kept per chat connection",
        ge=1,
    )
    crawl_max_chars: int = Field(
        5000,
        description="Maximum page text characters returned by the crawler",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_000_000, description="Rotate log file after this size (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    vector: VectorSettings = Field(default_factory=_build_vector_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
