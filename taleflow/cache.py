"""Time-bounded memoization of step results."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from .contracts import Capability

logger = logging.getLogger(__name__)


class _Miss:
    def __repr__(self) -> str:  # pragma: no cover - simple formatting
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Miss()


class CacheEntry(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    signature: str
    value: Any
    stored_at: float


def _canonical(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    return payload


def make_signature(capability: Capability | str, provider: str, payload: Any) -> str:
    """Build a stable cache key from capability, provider and payload content.

    Payloads are compared by content: dictionaries with the same items in a
    different order produce the same signature.
    """
    capability = Capability(capability)
    encoded = json.dumps(
        _canonical(payload), sort_keys=True, separators=(",", ":"), default=str
    )
    digest = hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:32]
    return f"{capability.value}:{provider}:{digest}"


class ResponseCache:
    """LRU cache whose entries expire ``ttl_ms`` after they were written.

    Expired entries are dropped when looked up and by :meth:`purge_expired`;
    inserting beyond ``max_entries`` evicts the least recently used entry.
    """

    def __init__(
        self,
        ttl_ms: float,
        max_entries: int,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.ttl_ms = ttl_ms
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return (now - entry.stored_at) * 1000 < self.ttl_ms

    def get(self, signature: str) -> Any:
        entry = self._entries.get(signature)
        if entry is None:
            return MISS
        if not self._is_fresh(entry, self._clock()):
            del self._entries[signature]
            logger.debug(f"Cache entry {signature} expired")
            return MISS
        self._entries.move_to_end(signature)
        return entry.value

    def put(self, signature: str, value: Any) -> None:
        self._entries[signature] = CacheEntry(
            signature=signature, value=value, stored_at=self._clock()
        )
        self._entries.move_to_end(signature)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cache entry {evicted}")

    def purge_expired(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        now = self._clock()
        stale = [s for s, e in self._entries.items() if not self._is_fresh(e, now)]
        for signature in stale:
            del self._entries[signature]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Response cache cleared")
