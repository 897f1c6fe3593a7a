"""
Caching for anonymous list reads.
"""

from lorevault.cache.list_cache import (
    CacheEntry,
    ListCache,
    build_cache_key,
    canonical_json,
    get_list_cache,
    list_prefix,
    reset_list_cache,
)

__all__ = [
    "CacheEntry",
    "ListCache",
    "build_cache_key",
    "canonical_json",
    "get_list_cache",
    "list_prefix",
    "reset_list_cache",
]
