"""
Anonymous read cache.

A short-TTL, process-wide map in front of list queries. It is only used
for unauthenticated requests: their results are already restricted to
PUBLIC rows by the security filter, so sharing them between anonymous
callers can at worst show public data to the public.

Lifecycle of an entry:
- created on a miss,
- served until it expires,
- dropped lazily by the first read after expiry,
- dropped eagerly (whole prefix) by any mutation of the resource kind.

Each process holds its own cache; there is no cross-process coherence.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from pydantic_core import to_jsonable_python

from lorevault.constants import LIST_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and the clock reading after which it is stale."""

    value: Any
    expires_at: float


def list_prefix(kind: str) -> str:
    """Key namespace of a resource kind's list results, e.g. ``items:list``."""
    return f"{kind}:list"


def canonical_json(value: Any) -> str:
    """JSON with keys sorted at every depth, so key order never changes the text."""
    return json.dumps(
        to_jsonable_python(value, fallback=str),
        sort_keys=True,
        separators=(",", ":"),
    )


def build_cache_key(prefix: str, query: Any) -> str:
    """Stable cache key: ``<prefix>:<sha1 of canonical query JSON>``."""
    digest = hashlib.sha1(canonical_json(query).encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"


class ListCache:
    """
    Thread-safe TTL map with prefix invalidation.

    Every operation holds one lock for its whole duration. get/set are
    O(1); invalidate_prefix is O(n) in the number of entries.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss, expiry, or unreadable entry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            try:
                expired = entry.expires_at < self._clock()
            except (AttributeError, TypeError):
                logger.warning(f"Dropping unreadable cache entry {key}")
                self._entries.pop(key, None)
                return None

            if expired:
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return None

            return entry.value

    def set(self, key: str, value: Any, ttl: float = LIST_CACHE_TTL_SECONDS) -> None:
        """Store a value for ``ttl`` seconds."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``. Returns how many."""
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cache entries under {prefix}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


# =============================================================================
# Process-wide instance
# =============================================================================


_default_cache: ListCache | None = None
_default_cache_lock = threading.Lock()


def get_list_cache() -> ListCache:
    """Get the process-wide list cache."""
    global _default_cache
    with _default_cache_lock:
        if _default_cache is None:
            _default_cache = ListCache()
        return _default_cache


def reset_list_cache() -> None:
    """Reset the process-wide list cache (useful for testing)."""
    global _default_cache
    with _default_cache_lock:
        _default_cache = None
