"""
Time-bounded memoization of successful tool results.

Entries are keyed by ``(provider, tool, canonical JSON of payload)`` and are
never proactively evicted: an entry older than the TTL is simply treated as a
miss on lookup. Values are always written whole, so concurrent writers to the
same key resolve as last-write-wins. Values are copied in and out, so callers
never share a cached object.
"""
from __future__ import annotations

import copy
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Tuple

from utils.logger import get_logger

logger = get_logger(__name__)

CacheKey = Tuple[str, str, str]
Clock = Callable[[], float]

MISS = object()


def canonical_payload(payload: Mapping[str, Any]) -> str:
    """Stable serialization: key order and whitespace never affect the key."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float


class ResultCache:
    """Process-wide result table with a global on/off switch and a TTL."""

    def __init__(self, *, enabled: bool = True, ttl_seconds: float = 300.0, clock: Clock = time.monotonic):
        self.enabled = enabled
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}

    @staticmethod
    def key_for(provider: str, tool: str, payload: Mapping[str, Any]) -> CacheKey:
        return provider, tool, canonical_payload(payload)

    def get(self, key: CacheKey) -> Any:
        """Return the cached value, or ``MISS`` when absent, stale or disabled."""
        if not self.enabled:
            return MISS
        entry = self._entries.get(key)
        if entry is None:
            return MISS
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            logger.debug("cache_stale", provider=key[0], tool=key[1])
            return MISS
        return copy.deepcopy(entry.value)

    def put(self, key: CacheKey, value: Any) -> None:
        if not self.enabled:
            return
        self._entries[key] = CacheEntry(value=copy.deepcopy(value), stored_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
