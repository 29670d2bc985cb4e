"""Short-lived cache of mined Q&A entries.

Entries are keyed by ``(channel, limit)`` and expire after a fixed TTL.
Invalidation works per channel so that a newly learned thread answer is
visible to the next search regardless of which limit was cached.
"""

import logging
import threading
import time
from typing import Any, Callable, List, Optional, Tuple

from cachetools import TTLCache  # type: ignore[import-untyped]
from qa_agent.metrics.qa_metrics import qa_cache_lookups
from qa_agent.services.qa.models import QAEntry

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, int]


class QACache:
    """Thread-safe TTL cache for per-channel Q&A history."""

    def __init__(
        self,
        ttl_seconds: float = 120.0,
        max_size: int = 256,
        timer: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Time-to-live for cache entries in seconds
            max_size: Maximum number of (channel, limit) entries
            timer: Clock used for expiry, injectable for tests
        """
        self._ttl_seconds = ttl_seconds
        self._max_size = max_size
        self._cache: TTLCache = TTLCache(
            maxsize=max_size, ttl=ttl_seconds, timer=timer
        )
        self._lock = threading.RLock()

        # Statistics
        self._hits = 0
        self._misses = 0

        logger.info(
            "QACache initialized: max_size=%d, ttl=%ss", max_size, ttl_seconds
        )

    def get(self, channel: str, limit: int) -> Optional[List[QAEntry]]:
        """Return cached entries, or None when absent or expired."""
        with self._lock:
            self._cache.expire()
            entries = self._cache.get((channel, limit))
            if entries is None:
                self._misses += 1
                qa_cache_lookups.labels(result="miss").inc()
                return None
            self._hits += 1
            qa_cache_lookups.labels(result="hit").inc()
            logger.debug("Cache hit for channel=%s limit=%d", channel, limit)
            return list(entries)

    def set(self, channel: str, limit: int, entries: List[QAEntry]) -> None:
        with self._lock:
            self._cache[(channel, limit)] = list(entries)
            logger.debug(
                "Cached %d entries for channel=%s limit=%d",
                len(entries),
                channel,
                limit,
            )

    def invalidate(self, channel: str) -> int:
        """Remove every cached limit for a channel.

        Returns:
            Number of entries removed
        """
        with self._lock:
            self._cache.expire()
            keys = [key for key in list(self._cache.keys()) if key[0] == channel]
            for key in keys:
                self._cache.pop(key, None)
        logger.info("Invalidated %d cache entries for channel=%s", len(keys), channel)
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Q&A cache cleared")

    def get_statistics(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with hits, misses, hit_rate, size, max_size, ttl_seconds
        """
        with self._lock:
            total = self._hits + self._misses
            hit_rate = self._hits / total if total > 0 else 0.0

            return {
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": hit_rate,
                "size": self.size,
                "max_size": self._max_size,
                "ttl_seconds": self._ttl_seconds,
            }

    @property
    def size(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
