"""
Review Insight Cache Module
===========================

Provides TTL memoization of pipeline results keyed by normalized input.

Usage:
    from src.cache import get_cache, make_cache_key

    cache = get_cache()
    key = make_cache_key(reviews, options)
    result = cache.get(key)
"""

from .result_cache import ResultCache, get_cache, make_cache_key

__all__ = ["ResultCache", "get_cache", "make_cache_key"]
