from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Mapping, Sequence

ChatMessages = Sequence[Mapping[str, str]]


class AbstractLLMClient(ABC):
	"""Interface for chat completion clients."""

	@abstractmethod
	async def chat(
		self,
		messages: ChatMessages,
		*,
		model: str | None = None,
		**kwargs: Any,
	) -> str:
		"""Return the full completion for ``messages``.

		Args:
			messages: Ordered ``role``/``content`` messages.
			model: Optional model override; defaults to the configured model.
			**kwargs: Provider-specific options (e.g., temperature, max_tokens).

		Raises:
			LLMAppError: If the provider call fails.
		"""
		...

	@abstractmethod
	def stream_chat(
		self,
		messages: ChatMessages,
		*,
		model: str | None = None,
		**kwargs: Any,
	) -> AsyncIterator[str]:
		"""Yield completion text chunks as they arrive.

		Raises:
			LLMAppError: If the provider call fails.
		"""
		...
