"""Factories for the embedding and vector index adapters."""

from app.adapters.vector.base import AbstractEmbedder, AbstractVectorIndex
from app.adapters.vector.http_index import HttpVectorIndex
from app.adapters.vector.openai_embedder import OpenAIEmbedder
from app.core.config import Settings, settings
from app.core.errors import ValidationAppError


def create_embedder(cfg: Settings | None = None) -> AbstractEmbedder:
    """Embeddings share the LLM provider credentials.

    Raises:
        ValidationAppError: If the provider is unsupported or has no key.
    """
    cfg = cfg or settings
    if cfg.llm.provider.lower() != "openai":
        raise ValidationAppError(
            code="embedding_unknown_provider",
            message=f"Unknown embedding provider: '{cfg.llm.provider}'. Supported providers: openai",
        )
    if not cfg.llm.api_key:
        raise ValidationAppError(
            code="llm_missing_api_key",
            message="OpenAI provider requires LLM_API_KEY environment variable",
        )
    return OpenAIEmbedder(
        api_key=cfg.llm.api_key,
        model=cfg.vector.embedding_model,
        base_url=cfg.llm.base_url,
        timeout_seconds=cfg.vector.timeout_seconds,
    )


def create_vector_index(cfg: Settings | None = None) -> AbstractVectorIndex:
    cfg = cfg or settings
    return HttpVectorIndex(
        cfg.vector.index_base_url,
        api_token=cfg.vector.api_token,
        timeout_seconds=cfg.vector.timeout_seconds,
    )
