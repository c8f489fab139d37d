"""Embedding and vector index adapters."""

from app.adapters.vector.base import AbstractEmbedder, AbstractVectorIndex, VectorMatch
from app.adapters.vector.factory import create_embedder, create_vector_index
from app.adapters.vector.http_index import HttpVectorIndex
from app.adapters.vector.openai_embedder import OpenAIEmbedder

__all__ = [
    "AbstractEmbedder",
    "AbstractVectorIndex",
    "HttpVectorIndex",
    "OpenAIEmbedder",
    "VectorMatch",
    "create_embedder",
    "create_vector_index",
]
