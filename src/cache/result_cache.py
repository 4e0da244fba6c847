"""
Result Cache for the Review Pipeline
====================================

In-memory memoization of AggregatedResult objects keyed by the normalized
pipeline input, so that re-submitting the same reviews with the same
options skips the analysis entirely.

Features:
- TTL-based expiration
- Max-size eviction of the oldest entry
- SHA-256 keys over JSON of (normalized reviews, options)
- Hit / miss statistics
- Thread safe (background jobs share one cache)

The pipeline itself stays cache-agnostic: only the job runner reads and
writes here.

Usage:
    cache = ResultCache(ttl_seconds=3600, max_size=50)
    key = make_cache_key(reviews, options, app_versions, window=period_key(now, options.time_period))
    result = cache.get(key)
    if result is None:
        cache.set(key, pipeline.run(reviews))

Environment variables:
    RESULT_CACHE_ENABLED - Memoize pipeline results (default: true)
    RESULT_CACHE_TTL_SECONDS - Entry lifetime (default: 86400)
    RESULT_CACHE_MAX_SIZE - Maximum entries (default: 100)
"""

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from ..reviews.review_models import RawReview, format_js_timestamp
from ..reviews.review_options import AnalysisOptions

logger = logging.getLogger(__name__)

# Global cache instance (singleton)
_cache_instance: Optional["ResultCache"] = None


def normalize_review(review: RawReview) -> Dict[str, Any]:
    """Canonical JSON-able form of a review used for keying."""
    return {
        "id": review.review_id,
        "userName": review.user_name,
        "text": review.content,
        "score": review.score,
        "thumbsUp": review.thumbs_up,
        "date": format_js_timestamp(review.date),
        "version": review.app_version,
    }


def make_cache_key(
    reviews: Sequence[RawReview],
    options: AnalysisOptions,
    app_versions: Optional[Sequence[str]] = None,
    window: Optional[str] = None,
) -> str:
    """
    SHA-256 hex digest of the normalized reviews, known versions, options
    and trend window.

    ``window`` is the key of the newest trend bucket. With the period and
    bucket count from the options it pins the whole window, so a result is
    never served for a clock that falls in another period.

    Identical inputs (same reviews in the same order, same options, same
    window) always map to the same key.
    """
    payload = {
        "window": window,
        "reviews": [normalize_review(r) for r in reviews],
        "versions": list(app_versions) if app_versions is not None else None,
        "options": options.cache_key_data(),
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


class ResultCache:
    """
    Bounded TTL cache.

    Entries are kept in insertion order; when full, the oldest entry is
    evicted before a new one is stored.
    """

    def __init__(
        self,
        ttl_seconds: int = 24 * 60 * 60,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttl_seconds: Lifetime of an entry.
            max_size: Maximum number of entries.
            clock: Time source in seconds (injectable for tests).
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_size <= 0:
            raise ValueError("max_size must be positive")

        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self.misses += 1
                logger.debug(f"Cache entry expired: {key[:16]}")
                return None

            self.hits += 1
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            self._purge_expired()
            while len(self._entries) >= self.max_size:
                oldest, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"Cache full, evicted {oldest[:16]}")
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Drop every entry; returns how many were removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            lookups = self.hits + self.misses
            return {
                "backend": "memory",
                "entries": len(self._entries),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
                "hit_rate": self.hits / lookups if lookups else 0.0,
            }


def get_cache(force_new: bool = False) -> ResultCache:
    """
    Get singleton cache instance configured from settings.

    Args:
        force_new: If True, create new instance even if one exists

    Returns:
        ResultCache instance
    """
    global _cache_instance

    if _cache_instance is None or force_new:
        from ..data.config import get_settings

        config = get_settings().cache
        _cache_instance = ResultCache(ttl_seconds=config.ttl_seconds, max_size=config.max_size)

    return _cache_instance
