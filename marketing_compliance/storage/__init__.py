"""Caching and result persistence."""

from .cache import CacheBackend, CacheStats, TTLCache, make_analysis_key
from .results import JsonlResultStore, ResultRecord, ResultStore

__all__ = [
    "CacheBackend",
    "CacheStats",
    "JsonlResultStore",
    "ResultRecord",
    "ResultStore",
    "TTLCache",
    "make_analysis_key",
]
