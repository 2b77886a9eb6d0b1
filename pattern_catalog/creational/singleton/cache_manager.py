"""
Cache manager singleton.

A process-wide key/value cache with per-item TTL, backed by an LRU so the
cache never grows past ``CACHE_MAX_SIZE`` entries.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from cachetools import Cache, LRUCache  # type: ignore[import-untyped]

from ...config import settings
from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class ItemStore(LRUCache):
    """LRU storage whose bookkeeping reads leave the recency order alone."""

    def peek(self, key: str) -> Optional["CacheItem"]:
        if key not in self:
            return None
        return Cache.__getitem__(self, key)

    def peek_items(self) -> List[Tuple[str, "CacheItem"]]:
        return [(key, self.peek(key)) for key in list(self)]


@dataclass
class CacheItem:
    """A cached value plus its bookkeeping."""

    value: Any
    expires_at: float
    created_at: float
    hits: int = field(default=0)


class CacheManager:
    """
    In-memory cache with TTL and hit tracking.

    Attributes:
        cache: LRU storage of CacheItem; only get() and set() refresh recency
        max_size: Maximum number of items
        hits: Number of successful lookups
        misses: Number of lookups that found nothing or an expired item
    """

    def __init__(
        self,
        max_size: Optional[int] = None,
        default_ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.max_size = max_size if max_size is not None else settings.CACHE_MAX_SIZE
        self.default_ttl_seconds = (
            default_ttl_seconds if default_ttl_seconds is not None else settings.CACHE_DEFAULT_TTL_SECONDS
        )
        if self.max_size < 1:
            raise ValidationException("max_size", self.max_size, "must be at least 1")
        if self.default_ttl_seconds < 0:
            raise ValidationException("default_ttl_seconds", self.default_ttl_seconds, "must be >= 0")
        self.cache = ItemStore(maxsize=self.max_size)
        self._clock = clock
        self.hits = 0
        self.misses = 0

        logger.info("Initialized CacheManager", max_size=self.max_size)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        now = self._clock()
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.cache[key] = CacheItem(value=value, expires_at=now + ttl, created_at=now)
        logger.debug("Cached", key=key, ttl_seconds=ttl)

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value.

        Returns:
            The cached value, or None when missing or expired
        """
        item = self._live_item(key, touch=True)
        if item is None:
            self.misses += 1
            logger.debug("Cache MISS", key=key)
            return None

        item.hits += 1
        self.hits += 1
        logger.debug("Cache HIT", key=key, hits=item.hits)
        return item.value

    def has(self, key: str) -> bool:
        return self._live_item(key, touch=False) is not None

    def delete(self, key: str) -> bool:
        if key in self.cache:
            del self.cache[key]
            return True
        return False

    def clear(self) -> None:
        count = len(self.cache)
        self.cache.clear()
        logger.info("Cleared cache", count=count)

    def cleanup(self) -> int:
        """Remove every expired item and return how many were dropped."""
        now = self._clock()
        expired = [key for key, item in self.cache.peek_items() if now > item.expires_at]
        for key in expired:
            del self.cache[key]
        if expired:
            logger.debug("Removed expired items", count=len(expired))
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        now = self._clock()
        items = [item for _, item in self.cache.peek_items()]
        total_requests = self.hits + self.misses
        hit_rate = (self.hits / total_requests * 100) if total_requests > 0 else 0
        average_age = sum(now - item.created_at for item in items) / len(items) if items else 0

        return {
            "size": len(self.cache),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate_percent": int(round(hit_rate)),
            "total_key_hits": sum(item.hits for item in items),
            "average_age_seconds": round(average_age, 2),
        }

    def get_top_keys(self, limit: int = 10) -> List[Dict[str, Any]]:
        ranked = sorted(self.cache.peek_items(), key=lambda kv: kv[1].hits, reverse=True)
        return [{"key": key, "hits": item.hits} for key, item in ranked[:limit]]

    def _live_item(self, key: str, touch: bool) -> Optional[CacheItem]:
        item = self.cache.get(key) if touch else self.cache.peek(key)
        if item is None:
            return None
        if self._clock() > item.expires_at:
            del self.cache[key]
            return None
        return item


# Global cache instance
_cache_manager: Optional[CacheManager] = None


def get_cache_manager() -> CacheManager:
    """Get or create the global cache manager."""
    global _cache_manager
    if _cache_manager is None:
        _cache_manager = CacheManager()
    return _cache_manager


def reset_cache_manager() -> None:
    """Drop the global instance (used by tests)."""
    global _cache_manager
    if _cache_manager is not None:
        _cache_manager.clear()
    _cache_manager = None


@demo(
    "singleton.cache-manager",
    pattern="Singleton",
    category=Category.CREATIONAL,
    title="Process-wide TTL cache",
)
def run_demo() -> None:
    cache = get_cache_manager()
    print(f"Singleton check: {cache is get_cache_manager()}")

    cache.set("user:1", {"id": 1, "name": "Alice"})
    cache.set("user:2", {"id": 2, "name": "Bob"})
    cache.set("session:abc", {"user_id": 1}, ttl_seconds=0.001)

    for _ in range(3):
        cache.get("user:1")
    cache.get("user:2")
    time.sleep(0.01)

    print(f"user:1 -> {cache.get('user:1')}")
    print(f"session:abc (expired) -> {cache.get('session:abc')}")
    print(f"has user:2: {cache.has('user:2')}, has user:3: {cache.has('user:3')}")
    print(f"Top keys: {cache.get_top_keys(2)}")
    print(f"Stats: {cache.get_stats()}")


if __name__ == "__main__":
    run_module(run_demo)
