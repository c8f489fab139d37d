"""Chat turns: retrieval-augmented prompts streamed from the LLM.

Rate limiting of turns happens before this service is called (see the chat
WebSocket route); by the time ``stream_reply`` runs the turn is allowed and
its quota unit is spent, even if the LLM call later fails.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import AsyncIterator

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.vector.base import VectorMatch
from app.core.errors import ValidationAppError, VectorAppError
from app.services.vector_search_service import VectorSearchService

logger = logging.getLogger(__name__)


class Conversation:
    """Bounded message history of one chat connection."""

    def __init__(self, max_messages: int = 20) -> None:
        self._messages: deque[dict[str, str]] = deque(maxlen=max_messages)

    def add(self, role: str, content: str) -> None:
        self._messages.append({"role": role, "content": content})

    def messages(self) -> list[dict[str, str]]:
        return list(self._messages)

    def last_user_message(self) -> str | None:
        for message in reversed(self._messages):
            if message["role"] == "user":
                return message["content"]
        return None


def format_context(matches: list[VectorMatch]) -> str:
    return "\n\n".join(
        f"[Source {position}: {match['metadata'].get('type', 'unknown')}, "
        f"relevance: {match['score']:.2f}]\n{match['metadata'].get('text', '')}"
        for position, match in enumerate(matches, start=1)
    )


class ChatService:
    """Build augmented prompts and stream replies."""

    def __init__(
        self,
        llm: AbstractLLMClient,
        vector_search: VectorSearchService,
        *,
        system_prompt: str,
        context_max_chunks: int = 5,
        context_min_score: float = 0.7,
        history_max_messages: int = 20,
    ) -> None:
        self.llm = llm
        self.vector_search = vector_search
        self.system_prompt = system_prompt
        self.context_max_chunks = context_max_chunks
        self.context_min_score = context_min_score
        self.history_max_messages = history_max_messages

    def new_conversation(self) -> Conversation:
        """Empty history for a new connection, bounded by this service's settings."""

        return Conversation(self.history_max_messages)

    async def retrieve_context(self, query: str) -> list[VectorMatch]:
        """Cached context lookup; a failing vector backend means no context."""

        try:
            return await self.vector_search.get_relevant_context(
                query,
                max_chunks=self.context_max_chunks,
                min_score=self.context_min_score,
            )
        except (VectorAppError, ValidationAppError) as exc:
            logger.warning("chat.context_unavailable", extra={"error_code": exc.code})
            return []

    def build_messages(
        self,
        history: list[dict[str, str]],
        context: list[VectorMatch],
    ) -> list[dict[str, str]]:
        prompt = self.system_prompt
        if context:
            prompt += f"\n\n=== RELEVANT CONTEXT ===\n{format_context(context)}\n=== END CONTEXT ==="
        return [{"role": "system", "content": prompt}] + [m for m in history if m["role"] != "system"]

    async def stream_reply(
        self,
        conversation: Conversation,
        *,
        model: str | None = None,
        context: list[VectorMatch] | None = None,
    ) -> AsyncIterator[str]:
        """Stream the assistant reply and record it in the conversation.

        Args:
            conversation: History ending with the user's new message.
            model: Optional model override.
            context: Pre-fetched context; looked up when omitted.
        """

        if context is None:
            query = conversation.last_user_message()
            context = await self.retrieve_context(query) if query else []

        messages = self.build_messages(conversation.messages(), context)

        parts: list[str] = []
        async for chunk in self.llm.stream_chat(messages, model=model):
            parts.append(chunk)
            yield chunk

        conversation.add("assistant", "".join(parts))
