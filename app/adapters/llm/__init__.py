"""LLM adapter layer - abstracts over chat completion providers."""

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.factory import create_llm_client
from app.adapters.llm.openai_client import OpenAIChatClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIChatClient",
    "create_llm_client",
]
