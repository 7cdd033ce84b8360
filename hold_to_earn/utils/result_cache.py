#!/usr/bin/env python3
"""
Result Stores with TTL expiry

Key-value stores behind the energy result cache. Both backends expose the
same async interface:

    await store.get(key)                      -> value or None
    await store.set(key, value, ttl_seconds)  -> None

`get` is a pure lookup: an entry older than its TTL reads as absent and
nothing is ever recomputed or refreshed on read. Values are JSON-compatible
dicts/lists.

Backends:
- InMemoryResultStore: OrderedDict LRU with per-entry expiry (dev, tests)
- RedisResultStore: redis.asyncio with native EX expiry (production)
"""

import copy
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from hold_to_earn.errors import CacheUnavailableError

logger = logging.getLogger(__name__)


class ResultStore(Protocol):
    """Async key-value store with explicit TTL."""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...


class InMemoryResultStore:
    """
    Memory-bounded TTL store using OrderedDict.

    Expired entries are dropped lazily on lookup. When capacity is reached
    the least recently written entry is evicted. Values are copied in and
    out so callers never share mutable state with the store.

    Performance:
    - get(): O(1)
    - set(): O(1)
    """

    def __init__(self, maxlen: int = 10000, clock: Callable[[], float] = time.time):
        """
        Initialize the store

        Args:
            maxlen: Maximum number of entries to keep (default: 10000)
            clock: Seconds clock; injectable for expiry tests
        """
        self.maxlen = maxlen
        self._clock = clock
        self._entries: OrderedDict = OrderedDict()
        self._stats = {
            "total_set": 0,
            "total_evicted": 0,
            "total_expired": 0,
            "total_lookups": 0,
            "cache_hits": 0,
            "cache_misses": 0,
        }

        logger.info(f"InMemoryResultStore initialized with maxlen={maxlen}")

    async def get(self, key: str) -> Optional[Any]:
        """
        Look up a value

        Args:
            key: Cache key

        Returns:
            Stored value if present and unexpired, None otherwise
        """
        self._stats["total_lookups"] += 1
        entry = self._entries.get(key)

        if entry is None:
            self._stats["cache_misses"] += 1
            return None

        if self._clock() >= entry["expires_at"]:
            del self._entries[key]
            self._stats["total_expired"] += 1
            self._stats["cache_misses"] += 1
            return None

        self._stats["cache_hits"] += 1
        return copy.deepcopy(entry["value"])

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """
        Store a value, overwriting any existing entry

        Args:
            key: Cache key
            value: JSON-compatible value
            ttl_seconds: Lifetime from now
        """
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.maxlen:
            evicted_key, _ = self._entries.popitem(last=False)
            self._stats["total_evicted"] += 1
            logger.debug(f"Evicted cache entry: {evicted_key}")

        now = self._clock()
        self._entries[key] = {
            "value": copy.deepcopy(value),
            "stored_at": now,
            "expires_at": now + ttl_seconds,
        }
        self._stats["total_set"] += 1

    def clear(self):
        """Remove all entries"""
        old_size = len(self._entries)
        self._entries.clear()
        logger.info(f"Result store cleared ({old_size} entries removed)")

    @property
    def size(self) -> int:
        """Current number of entries (including not-yet-collected expired ones)"""
        return len(self._entries)

    @property
    def hit_rate(self) -> float:
        lookups = self._stats["total_lookups"]
        if lookups == 0:
            return 0.0
        return self._stats["cache_hits"] / lookups

    def get_stats(self) -> Dict[str, Any]:
        """
        Get store statistics

        Returns:
            Dictionary with store statistics
        """
        return {
            "backend": "memory",
            "size": self.size,
            "maxlen": self.maxlen,
            "hit_rate": self.hit_rate,
            **self._stats,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __repr__(self) -> str:
        return (
            f"InMemoryResultStore(size={self.size}/{self.maxlen}, "
            f"hit_rate={self.hit_rate:.2%})"
        )


class RedisResultStore:
    """
    Redis-backed store

    Values are stored as JSON strings under `{key_prefix}{key}` with native
    EX expiry. Connection and protocol errors surface as
    CacheUnavailableError so the caller can degrade to a miss.
    """

    def __init__(self, url: str, key_prefix: str = "hold-to-earn:"):
        """
        Args:
            url: redis:// URL
            key_prefix: Namespace prepended to every key
        """
        self.key_prefix = key_prefix
        self._redis = aioredis.Redis.from_url(url, decode_responses=True)
        logger.info("Redis result store enabled: %s", url.split("@")[-1])

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._redis.get(self._make_key(key))
        except RedisError as e:
            raise CacheUnavailableError(f"redis get failed for {key}: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheUnavailableError(f"corrupt cache value for {key}: {e}") from e

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            await self._redis.set(
                self._make_key(key), json.dumps(value), ex=int(ttl_seconds)
            )
        except RedisError as e:
            raise CacheUnavailableError(f"redis set failed for {key}: {e}") from e

    async def close(self) -> None:
        await self._redis.aclose()

    def get_stats(self) -> Dict[str, Any]:
        return {"backend": "redis", "key_prefix": self.key_prefix}


def create_result_store(redis_url: Optional[str] = None) -> ResultStore:
    """Redis store when a URL is configured, in-memory store otherwise."""
    if redis_url:
        return RedisResultStore(redis_url)
    return InMemoryResultStore()
