"""
In-memory TTL Cache Implementation
Thread-safe caching with per-entry TTL, LRU eviction and load-through.
"""

import time
import logging
from collections import OrderedDict
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class TTLCache:
    """Thread-safe in-memory TTL cache with LRU eviction."""

    def __init__(self, max_size: int, ttl_seconds: int):
        """
        Initialize TTL cache.

        Args:
            max_size: Maximum number of entries to store
            ttl_seconds: Default time-to-live in seconds for each entry
        """
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        # key -> (value, stored_at, ttl); order = least recently used first
        self.cache: "OrderedDict[str, Tuple[Any, float, int]]" = OrderedDict()
        self.lock = Lock()
        self.hits = 0
        self.misses = 0

    def _is_expired(self, stored_at: float, ttl: int, now: float) -> bool:
        return now - stored_at > ttl

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache if not expired.

        Returns:
            Cached value or None if not found/expired
        """
        with self.lock:
            entry = self.cache.get(key)
            if entry is None:
                self.misses += 1
                return None

            value, stored_at, ttl = entry
            if self._is_expired(stored_at, ttl, time.time()):
                del self.cache[key]
                self.misses += 1
                logger.debug(f"[Cache] Key expired: {key}")
                return None

            self.cache.move_to_end(key)
            self.hits += 1
            logger.debug(f"[Cache] Hit: {key}")
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Set value in cache, evicting expired entries and then the least
        recently used entry when full.
        """
        with self.lock:
            now = time.time()
            for k in [k for k, (_, ts, t) in self.cache.items() if self._is_expired(ts, t, now)]:
                del self.cache[k]
                logger.debug(f"[Cache] Evicted expired key: {k}")

            if key not in self.cache and len(self.cache) >= self.max_size:
                oldest_key, _ = self.cache.popitem(last=False)
                logger.debug(f"[Cache] Evicted least recently used key: {oldest_key}")

            entry_ttl = ttl if ttl is not None else self.ttl_seconds
            self.cache[key] = (value, now, entry_ttl)
            self.cache.move_to_end(key)
            logger.debug(f"[Cache] Set: {key} with TTL {entry_ttl}s")

    def get_or_load(self, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """
        Return the cached value, or call loader() and cache its result.

        The loader runs outside the lock; concurrent misses may both load,
        the last one to finish is kept.
        """
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        self.set(key, value, ttl)
        return value

    def delete(self, key: str) -> bool:
        """Delete a key; True if it was present."""
        with self.lock:
            if key in self.cache:
                del self.cache[key]
                logger.debug(f"[Cache] Deleted key: {key}")
                return True
            return False

    def delete_prefix(self, prefix: str) -> int:
        """Delete all keys starting with prefix; returns the number deleted."""
        with self.lock:
            keys = [k for k in self.cache if k.startswith(prefix)]
            for k in keys:
                del self.cache[k]
            if keys:
                logger.info(f"[Cache] Deleted {len(keys)} keys with prefix: {prefix}")
            return len(keys)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self.lock:
            self.cache.clear()
            logger.info("[Cache] Cleared all entries")

    def size(self) -> int:
        with self.lock:
            return len(self.cache)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self.lock:
            now = time.time()
            active_entries = sum(
                1 for _, ts, t in self.cache.values() if not self._is_expired(ts, t, now)
            )
            return {
                "size": len(self.cache),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "active_entries": active_entries,
                "hits": self.hits,
                "misses": self.misses,
            }
