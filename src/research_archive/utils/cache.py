"""
In-memory caching with per-entry expiry.

Two independent caches are kept: one for merged search results and one
for single-paper lookups. Both live only as long as the process. Expired
entries are dropped lazily on read and by an opportunistic sweep that
callers trigger at most once per cleanup interval; no background timer
is started.
"""

import json
import time
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..models.config import CacheSettings

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class TTLCache:
    """Bounded key/value store with lazy expiry and oldest-first eviction."""

    def __init__(self, max_entries: int = 1000, default_ttl: float = 3600.0, clock: Optional[Clock] = None):
        """Initialize the cache.

        Args:
            max_entries: Capacity; the oldest entry is evicted when full
            default_ttl: Lifetime in seconds used when ``set`` gets none
            clock: Time source in seconds, ``time.monotonic`` by default
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")

        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._stats = {"hits": 0, "misses": 0, "evictions": 0, "expired": 0}

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats["expired"] += 1
                self._stats["misses"] += 1
                logger.debug(f"Cache entry expired: {key}")
                return None

            self._stats["hits"] += 1
            return entry.data

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` for ``ttl`` seconds, evicting the oldest entry if full."""
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict_oldest()

            self._entries[key] = CacheEntry(
                data=value,
                timestamp=self._clock(),
                ttl=self.default_ttl if ttl is None else ttl,
            )

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._stats["expired"] += len(expired)

        if expired:
            logger.debug(f"Cache cleanup removed {len(expired)} entries")
        return len(expired)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                **self._stats,
            }

    def __len__(self) -> int:
        return len(self._entries)

    def _evict_oldest(self) -> None:
        oldest_key = None
        oldest_time = float("inf")

        for key, entry in self._entries.items():
            if entry.timestamp < oldest_time:
                oldest_time = entry.timestamp
                oldest_key = key

        if oldest_key is not None:
            del self._entries[oldest_key]
            self._stats["evictions"] += 1
            logger.debug(f"Evicted oldest cache entry: {oldest_key}")


def get_search_cache_key(query: str, options: Dict[str, Any]) -> str:
    """Deterministic key from the query and every option, keys sorted."""
    parts = "|".join(
        f"{key}:{json.dumps(options[key], sort_keys=True, separators=(',', ':'))}"
        for key in sorted(options)
    )
    return f"search:{query}:{parts}"


def get_paper_cache_key(paper_id: str) -> str:
    return f"paper:{paper_id}"


class CacheManager:
    """Owns the search and paper caches and throttles their cleanup."""

    def __init__(self, settings: Optional[CacheSettings] = None, clock: Optional[Clock] = None):
        """Initialize cache manager.

        Args:
            settings: Capacities, lifetimes and cleanup interval
            clock: Time source shared by both caches
        """
        self.settings = settings or CacheSettings()
        self._clock = clock or time.monotonic

        self.search_cache = TTLCache(
            max_entries=self.settings.search_max_entries,
            default_ttl=self.settings.search_ttl,
            clock=self._clock,
        )
        self.paper_cache = TTLCache(
            max_entries=self.settings.paper_max_entries,
            default_ttl=self.settings.paper_ttl,
            clock=self._clock,
        )

        self._last_cleanup = self._clock()
        self._cleanup_lock = threading.Lock()

        logger.info(
            f"Initialized CacheManager (search: {self.settings.search_max_entries}, "
            f"papers: {self.settings.paper_max_entries})"
        )

    def maybe_cleanup(self) -> int:
        """Sweep both caches if the cleanup interval has elapsed.

        Returns:
            Number of entries removed, 0 when the sweep was skipped
        """
        with self._cleanup_lock:
            now = self._clock()
            if now - self._last_cleanup <= self.settings.cleanup_interval:
                return 0
            self._last_cleanup = now

        removed = self.search_cache.cleanup() + self.paper_cache.cleanup()
        if removed:
            logger.info(f"Removed {removed} expired cache entries")
        return removed

    def clear(self) -> None:
        self.search_cache.clear()
        self.paper_cache.clear()

    def get_stats(self) -> Dict[str, Dict[str, int]]:
        return {"search": self.search_cache.stats(), "papers": self.paper_cache.stats()}
