"""
Tests for the in-memory result cache and its keys.

Usage:
    pytest tests/test_result_cache.py -v
"""

from datetime import datetime, timezone

import pytest

from src.cache.result_cache import ResultCache, make_cache_key
from src.reviews.review_models import RawReview
from src.reviews.review_options import AnalysisOptions


# ============================================================================
# TEST DATA
# ============================================================================

def make_review(review_id, content="Great app", score=5):
    return RawReview(
        review_id=review_id,
        user_name="Ana",
        content=content,
        score=score,
        thumbs_up=0,
        date=datetime(2026, 10, 12, tzinfo=timezone.utc),
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


# ============================================================================
# KEYS
# ============================================================================

class TestCacheKey:

    def setup_method(self):
        self.reviews = [make_review("a"), make_review("b", "Slow", 2)]
        self.options = AnalysisOptions()

    def test_same_input_same_key(self):
        assert make_cache_key(self.reviews, self.options) == make_cache_key(list(self.reviews), AnalysisOptions())

    def test_sha256_hex(self):
        key = make_cache_key(self.reviews, self.options)
        assert len(key) == 64
        int(key, 16)

    def test_options_change_key(self):
        other = AnalysisOptions(time_period="month")
        assert make_cache_key(self.reviews, self.options) != make_cache_key(self.reviews, other)

    def test_order_changes_key(self):
        assert make_cache_key(self.reviews, self.options) != make_cache_key(self.reviews[::-1], self.options)

    def test_versions_change_key(self):
        assert make_cache_key(self.reviews, self.options) != make_cache_key(self.reviews, self.options, ["2.1.0"])

    def test_window_changes_key(self):
        october = make_cache_key(self.reviews, self.options, window="2026-10-12")
        assert october == make_cache_key(self.reviews, self.options, window="2026-10-12")
        assert october != make_cache_key(self.reviews, self.options, window="2026-10-19")
        assert october != make_cache_key(self.reviews, self.options)

    def test_content_changes_key(self):
        edited = [make_review("a", "Great app!"), self.reviews[1]]
        assert make_cache_key(self.reviews, self.options) != make_cache_key(edited, self.options)


# ============================================================================
# CACHE
# ============================================================================

class TestResultCache:
    """TTL expiry, size bound and statistics."""

    def setup_method(self):
        self.clock = FakeClock()
        self.cache = ResultCache(ttl_seconds=10, max_size=2, clock=self.clock)

    def test_get_and_set(self):
        self.cache.set("a", 1)
        assert self.cache.get("a") == 1
        assert self.cache.get("missing") is None
        assert (self.cache.hits, self.cache.misses) == (1, 1)

    def test_ttl_expiry(self):
        self.cache.set("a", 1)
        self.clock.now = 9.9
        assert self.cache.get("a") == 1
        self.clock.now = 10.0
        assert self.cache.get("a") is None
        assert len(self.cache) == 0

    def test_oldest_entry_evicted(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.set("c", 3)
        assert self.cache.get("a") is None
        assert self.cache.get("c") == 3
        assert self.cache.evictions == 1
        assert len(self.cache) == 2

    def test_rewrite_refreshes_position(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.set("a", 10)
        self.cache.set("c", 3)
        assert self.cache.get("a") == 10
        assert self.cache.get("b") is None

    def test_expired_entries_purged_before_eviction(self):
        self.cache.set("a", 1)
        self.clock.now = 5
        self.cache.set("b", 2)
        self.clock.now = 11
        self.cache.set("c", 3)
        assert self.cache.evictions == 0
        assert self.cache.get("b") == 2

    def test_delete_and_clear(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        assert self.cache.delete("a") is True
        assert self.cache.delete("a") is False
        assert self.cache.clear() == 1
        assert len(self.cache) == 0

    def test_stats(self):
        self.cache.set("a", 1)
        self.cache.get("a")
        self.cache.get("a")
        self.cache.get("b")
        stats = self.cache.get_stats()
        assert stats["backend"] == "memory"
        assert stats["entries"] == 1
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_rate"] == pytest.approx(2 / 3)

    @pytest.mark.parametrize("kwargs", [{"ttl_seconds": 0}, {"max_size": 0}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            ResultCache(**kwargs)
