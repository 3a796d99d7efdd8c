"""
Result Caching
==============

Time-boxed memoization of ledger query results:
- Product lists
- Aggregated event feeds
- Derived dashboard statistics

Entries expire after a TTL (5 minutes by default) and every entry is
dropped on a successful mutation. The cache is an explicit instance owned
by its aggregator. Entries are replaced by a single dict assignment, so a
reader never sees a partially written entry.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_TTL_SECONDS = 300


class _Miss:
    """Sentinel for a cache miss (None and [] are valid cached values)."""

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()


# ============================================
# Cache Entry
# ============================================

@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and when it was fetched."""
    data: T
    fetched_at: float
    ttl_seconds: float = DEFAULT_TTL_SECONDS

    def is_valid(self, now: float) -> bool:
        return now - self.fetched_at < self.ttl_seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fetched_at": self.fetched_at,
            "ttl_seconds": self.ttl_seconds,
        }


# ============================================
# Cache Statistics
# ============================================

@dataclass
class CacheStats:
    """Cache statistics."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    expired: int = 0
    invalidations: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "expired": self.expired,
            "invalidations": self.invalidations,
            "size": self.size,
            "hit_rate": round(self.hit_rate, 3)
        }


# ============================================
# Result Cache
# ============================================

class ResultCache:
    """In-memory TTL cache keyed by query name."""

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self._stats = CacheStats()

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Any:
        """Cached value for ``key``, or MISS when absent or expired."""
        entry = self._entries.get(key)

        if entry is None:
            self._stats.misses += 1
            return MISS

        if not entry.is_valid(self._clock()):
            self._entries.pop(key, None)
            self._stats.expired += 1
            self._stats.misses += 1
            self._stats.size = len(self._entries)
            return MISS

        self._stats.hits += 1
        return entry.data

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        self._entries[key] = CacheEntry(
            data=value,
            fetched_at=self._clock(),
            ttl_seconds=self._default_ttl if ttl is None else ttl,
        )
        self._stats.sets += 1
        self._stats.size = len(self._entries)

    def invalidate_all(self) -> int:
        """Drop every entry. Returns how many were dropped."""
        count = len(self._entries)
        self._entries = {}
        self._stats.invalidations += 1
        self._stats.size = 0
        if count:
            logger.debug(f"Invalidated {count} cache entries")
        return count

    def get_or_set(self, key: str, factory: Callable[[], T], ttl: Optional[float] = None) -> T:
        """Get from cache or compute and cache."""
        value = self.get(key)
        if value is not MISS:
            return value

        value = factory()
        self.put(key, value, ttl)
        return value

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._stats


# ============================================
# Decorators
# ============================================

def invalidates_cache(func: Callable) -> Callable:
    """Invalidate ``self.cache`` after the wrapped method returns successfully."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        result = func(self, *args, **kwargs)
        self.cache.invalidate_all()
        return result
    return wrapper


__all__ = [
    'CacheEntry',
    'CacheStats',
    'ResultCache',
    'MISS',
    'DEFAULT_TTL_SECONDS',
    'invalidates_cache',
]
