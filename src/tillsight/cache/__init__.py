"""Insight cache with single-flight generation."""

from tillsight.cache.single_flight import CacheOutcome, SingleFlightCache, make_cache_key

__all__ = ["CacheOutcome", "SingleFlightCache", "make_cache_key"]
