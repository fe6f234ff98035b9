"""Request cache with TTL for remote document store calls.

Responses are cached per URL and request options. A fresh entry answers the
request without a remote call; a miss goes through the rate limiter and the
transport. Entries are optionally persisted so a restart keeps warm data.
"""

import asyncio
import json
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from gamebin.core.logging import get_logger
from gamebin.infrastructure.cache.cache_storage import JsonFileCacheStorage
from gamebin.infrastructure.cache.rate_limiter import RateLimiter

logger = get_logger(__name__)

Transport = Callable[[str, Mapping[str, Any] | None], Awaitable[Any]]


@dataclass
class CacheEntry:
    """Cached response.

    Attributes:
        data: The response payload.
        timestamp: Epoch seconds when the response was received.
    """

    data: Any
    timestamp: float


def make_cache_key(url: str, options: Mapping[str, Any] | None = None) -> str:
    """Key a request by URL and its options serialized with sorted keys."""
    return f"{url}_{json.dumps(options, sort_keys=True)}"


class RequestCache:
    """TTL cache in front of a remote transport.

    Cache keys are formatted as: {url}_{options as JSON}
    """

    def __init__(
        self,
        transport: Transport,
        ttl_seconds: float = 300,
        storage: JsonFileCacheStorage | None = None,
        rate_limiter: RateLimiter | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the cache.

        Args:
            transport: Coroutine function performing the remote call.
            ttl_seconds: Time-to-live for cache entries in seconds (default: 5 minutes).
            storage: Optional durable storage; entries are loaded from it now.
            rate_limiter: Optional limiter consulted before each remote call.
            clock: Time source returning epoch seconds.
        """
        self.transport = transport
        self.ttl_seconds = ttl_seconds
        self.storage = storage
        self.rate_limiter = rate_limiter
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._remote_calls = 0
        self._failures = 0
        self._sweeper: asyncio.Task | None = None

        if storage is not None:
            now = clock()
            for key, raw in storage.load().items():
                entry = CacheEntry(data=raw["data"], timestamp=raw["timestamp"])
                if self._is_fresh(entry, now):
                    self._cache[key] = entry
            logger.info("Request cache restored", entries=len(self._cache))

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp < self.ttl_seconds

    def _persist(self) -> None:
        if self.storage is None:
            return
        self.storage.save(
            {key: {"data": entry.data, "timestamp": entry.timestamp} for key, entry in self._cache.items()}
        )

    async def request(self, url: str, options: Mapping[str, Any] | None = None) -> Any:
        """Return a cached response or perform the remote call.

        Raises:
            RateLimitExceeded: If the call would exceed the remote call ceiling.
            RemoteRequestFailed: If the transport fails. Nothing is cached.
        """
        key = make_cache_key(url, options)
        entry = self._cache.get(key)
        if entry is not None and self._is_fresh(entry, self._clock()):
            self._hits += 1
            logger.debug("Cache hit", url=url)
            return entry.data

        self._misses += 1
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()

        self._remote_calls += 1
        logger.debug("Cache miss, calling remote", url=url)
        try:
            data = await self.transport(url, options)
        except Exception as e:
            self._failures += 1
            logger.warning("Remote call failed", url=url, error=str(e))
            raise

        self._cache[key] = CacheEntry(data=data, timestamp=self._clock())
        self._persist()
        return data

    def get(self, url: str, options: Mapping[str, Any] | None = None) -> Any | None:
        """Cached payload if present and fresh, without calling the remote."""
        entry = self._cache.get(make_cache_key(url, options))
        if entry is None or not self._is_fresh(entry, self._clock()):
            return None
        return entry.data

    def invalidate(self, *fragments: str) -> int:
        """Remove entries whose key contains any of the fragments.

        Returns:
            Number of entries removed.
        """
        keys_to_delete = [
            key for key in self._cache if any(fragment in key for fragment in fragments)
        ]
        for key in keys_to_delete:
            del self._cache[key]

        if keys_to_delete:
            self._persist()
            logger.debug("Cache invalidated", fragments=list(fragments), removed=len(keys_to_delete))
        return len(keys_to_delete)

    def clear(self) -> None:
        self._cache.clear()
        self._persist()

    def sweep(self) -> int:
        """Remove all expired entries from cache.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        keys_to_delete = [key for key, entry in self._cache.items() if not self._is_fresh(entry, now)]
        for key in keys_to_delete:
            del self._cache[key]

        if keys_to_delete:
            self._persist()
            logger.debug("Expired cache entries swept", removed=len(keys_to_delete))
        return len(keys_to_delete)

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    def start_sweeper(self, interval: float = 60) -> asyncio.Task:
        """Run sweep() every ``interval`` seconds on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever(interval))
            logger.info("Cache sweeper started", interval=interval)
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("Cache sweeper stopped")

    def size(self) -> int:
        return len(self._cache)

    def stats(self) -> dict[str, Any]:
        """Counters describing cache effectiveness and remote usage."""
        stats: dict[str, Any] = {
            "entries": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "remote_calls": self._remote_calls,
            "failures": self._failures,
        }
        if self.rate_limiter is not None:
            stats["calls_used"] = self.rate_limiter.used
            stats["calls_remaining"] = self.rate_limiter.remaining
        return stats
