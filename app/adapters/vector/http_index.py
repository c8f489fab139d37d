"""REST vector index client.

Talks to a vector index service exposing::

    POST {base_url}/indexes/{name}/query   {"vector", "topK", "filter", "returnMetadata"}
    POST {base_url}/indexes/{name}/upsert  {"vectors": [{"id", "values", "metadata"}]}
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from app.adapters.vector.base import AbstractVectorIndex, VectorMatch, VectorRecord
from app.core.errors import VectorAppError

logger = logging.getLogger(__name__)


class HttpVectorIndex(AbstractVectorIndex):
    """Vector index reached over HTTP with a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str | None,
        *,
        api_token: str | None = None,
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds, headers=headers)

    def _url(self, index_name: str, action: str) -> str:
        if not self._base_url:
            raise VectorAppError(
                code="vector_index_not_configured",
                message="Vector index is not configured (set VECTOR_INDEX_BASE_URL)",
                details={"index_name": index_name},
            )
        return f"{self._base_url}/indexes/{index_name}/{action}"

    async def _post(self, index_name: str, action: str, body: dict[str, Any]) -> dict[str, Any]:
        url = self._url(index_name, action)
        try:
            response = await self._client.post(url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "vector_index.request_failed",
                extra={"index_name": index_name, "action": action, "error_type": type(exc).__name__},
            )
            raise VectorAppError(
                code=f"vector_{action}_failed",
                message=f"Vector index {action} failed",
                details={"index_name": index_name},
            ) from exc

        payload = response.json()
        # Some services wrap the payload in {"result": ...}
        return payload.get("result", payload) if isinstance(payload, dict) else {}

    async def query(
        self,
        index_name: str,
        vector: Sequence[float],
        *,
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        body: dict[str, Any] = {"vector": list(vector), "topK": top_k, "returnMetadata": "all"}
        if filter:
            body["filter"] = filter

        payload = await self._post(index_name, "query", body)
        return [
            VectorMatch(
                id=str(match["id"]),
                score=float(match.get("score", 0.0)),
                metadata=dict(match.get("metadata") or {}),
            )
            for match in payload.get("matches", [])
        ]

    async def upsert(self, index_name: str, records: Sequence[VectorRecord]) -> int:
        if not records:
            return 0
        await self._post(index_name, "upsert", {"vectors": [dict(r) for r in records]})
        return len(records)

    async def aclose(self) -> None:
        await self._client.aclose()
