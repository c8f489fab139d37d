"""Deterministic cache key construction.

Two kinds of keys are built here:

- Local result cache keys (``cache:{tag}:{parts}``) for vector queries. Every
  part goes through :func:`stable_serialize`, so filter objects that only
  differ in key order produce the same key.
- Gateway cache keys: a SHA-256 digest over model + ordered messages,
  attached to outbound LLM requests so the upstream gateway can deduplicate
  identical completions. This process never looks these keys up itself.
"""

from __future__ import annotations

import json
import logging
from hashlib import sha256
from typing import Any, Iterable, Mapping

from app.adapters.storage.base import CACHE_NAMESPACE, namespaced_key

logger = logging.getLogger(__name__)


def stable_serialize(value: Any) -> str:
    """Serialize ``value`` canonically.

    Mapping keys are sorted lexicographically at every depth; sequences keep
    their positional order.

    Raises:
        TypeError: If the value (or a nested value) is not JSON-serializable.
        ValueError: If it contains NaN/Infinity or a circular reference.
    """

    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def build_cache_key(tag: str, *parts: Any) -> str | None:
    """Build a namespaced result cache key.

    Args:
        tag: Logical operation name (``query``, ``context``...).
        *parts: Operation parameters; order matters.

    Returns:
        The key, or None when a part cannot be serialized. Callers treat None
        as "skip the cache" and run the real operation.
    """

    try:
        serialized = "|".join(stable_serialize(part) for part in parts)
    except (TypeError, ValueError) as exc:
        logger.warning(
            "cache.key_unserializable",
            extra={"tag": tag, "error_type": type(exc).__name__},
        )
        return None
    return namespaced_key(CACHE_NAMESPACE, f"{tag}:{serialized}")


def derive_gateway_cache_key(model: str, messages: Iterable[Mapping[str, Any]]) -> str:
    """Digest an LLM request for the upstream gateway cache.

    Args:
        model: Model identifier the request is sent to.
        messages: Ordered chat messages (``role``/``content`` mappings).

    Returns:
        Hex-encoded SHA-256 digest, or an empty string when the request
        cannot be serialized (the request is then sent without a key).
    """

    try:
        payload = {"model": model, "messages": [dict(message) for message in messages]}
        canonical = stable_serialize(payload)
    except (TypeError, ValueError) as exc:
        logger.warning(
            "gateway_cache_key.failed",
            extra={"model": model, "error_type": type(exc).__name__},
        )
        return ""
    return sha256(canonical.encode("utf-8")).hexdigest()
