"""OpenAI chat client adapter routed through an AI gateway."""

import logging
from typing import Any, AsyncIterator

from openai import AsyncOpenAI, OpenAIError

from app.adapters.llm.base import AbstractLLMClient, ChatMessages
from app.core.errors import LLMAppError
from app.utils.cache_keys import derive_gateway_cache_key

logger = logging.getLogger(__name__)


class OpenAIChatClient(AbstractLLMClient):
    """Client for OpenAI-compatible chat completions.

    When ``base_url`` points at a caching gateway, every request carries a
    deterministic cache key (model + messages digest) and a TTL header so the
    gateway can answer repeated identical requests without calling the model.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
        *,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        cache_ttl_seconds: int = 3600,
        cache_key_header: str = "cf-aig-cache-key",
        cache_ttl_header: str = "cf-aig-cache-ttl",
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: Provider API key.
            model: Default model name (e.g., "gpt-4o-mini").
            base_url: Optional gateway/custom base URL.
            timeout_seconds: Timeout for requests in seconds.
            temperature: Default sampling temperature.
            max_tokens: Default completion token limit.
            cache_ttl_seconds: TTL requested from the gateway cache.
            cache_key_header: Header name for the gateway cache key.
            cache_ttl_header: Header name for the gateway cache TTL.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.cache_ttl_seconds = cache_ttl_seconds
        self.cache_key_header = cache_key_header
        self.cache_ttl_header = cache_ttl_header

    def gateway_headers(self, model: str, messages: ChatMessages) -> dict[str, str]:
        """Headers letting the upstream gateway deduplicate this request."""

        headers = {self.cache_ttl_header: str(self.cache_ttl_seconds)}
        cache_key = derive_gateway_cache_key(model, messages)
        if cache_key:
            headers[self.cache_key_header] = cache_key
        return headers

    def _request_params(
        self,
        messages: ChatMessages,
        model: str | None,
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        selected_model = model or self.model
        message_list = [{"role": m["role"], "content": m["content"]} for m in messages]

        request_params: dict[str, Any] = {
            "model": selected_model,
            "messages": message_list,
            "temperature": kwargs.pop("temperature", self.temperature),
            "max_tokens": kwargs.pop("max_tokens", self.max_tokens),
            "extra_headers": self.gateway_headers(selected_model, message_list),
        }

        # Pass through additional parameters if provided
        for param in ("top_p", "frequency_penalty", "presence_penalty", "seed", "stop"):
            if param in kwargs:
                request_params[param] = kwargs[param]
        return request_params

    async def chat(
        self,
        messages: ChatMessages,
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> str:
        request_params = self._request_params(messages, model, kwargs)
        try:
            response = await self.client.chat.completions.create(**request_params)
        except OpenAIError as exc:
            raise LLMAppError(
                code="llm_request_failed",
                message=f"LLM provider error: {exc}",
                details={"model": request_params["model"]},
            ) from exc

        content = response.choices[0].message.content
        if content is None:
            raise LLMAppError(
                code="llm_empty_response",
                message="LLM returned empty response",
                details={"model": request_params["model"]},
            )
        return content.strip()

    async def stream_chat(
        self,
        messages: ChatMessages,
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[str]:
        request_params = self._request_params(messages, model, kwargs)
        try:
            stream = await self.client.chat.completions.create(stream=True, **request_params)
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except OpenAIError as exc:
            logger.error(
                "llm.stream_failed",
                extra={"model": request_params["model"], "error_type": type(exc).__name__},
            )
            raise LLMAppError(
                code="llm_stream_failed",
                message=f"LLM provider error: {exc}",
                details={"model": request_params["model"]},
            ) from exc
