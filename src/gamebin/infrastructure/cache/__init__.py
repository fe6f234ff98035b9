"""Request caching and remote call limiting."""

from gamebin.infrastructure.cache.cache_storage import JsonFileCacheStorage
from gamebin.infrastructure.cache.rate_limiter import RateLimiter
from gamebin.infrastructure.cache.request_cache import CacheEntry, RequestCache, make_cache_key

__all__ = [
    "CacheEntry",
    "JsonFileCacheStorage",
    "RateLimiter",
    "RequestCache",
    "make_cache_key",
]
