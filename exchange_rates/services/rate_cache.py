"""Cache clients holding the latest known rate per currency pair."""

from __future__ import annotations

import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Protocol

import redis

logger = logging.getLogger(__name__)

CACHE_EXT_KEY = "rate_cache"


def pair_key(base: str, target: str) -> str:
    """Render the opaque cache key for a currency pair."""

    return f"{base}:{target}"


class RateCache(Protocol):
    """Minimal get/put/evict contract the rate store relies on."""

    def get(self, key: str) -> Decimal | None: ...

    def put(self, key: str, value: Decimal) -> None: ...

    def evict(self, key: str) -> None: ...


class InMemoryRateCache:
    """Process-local cache guarded by a lock; entries live until evicted."""

    def __init__(self) -> None:
        self._entries: dict[str, Decimal] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Decimal | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, value: Decimal) -> None:
        with self._lock:
            self._entries[key] = value

    def evict(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisRateCache:
    """Redis-backed cache storing rates as decimal strings without expiry.

    Redis failures degrade to cache misses so that reads fall through to the
    durable history instead of failing.
    """

    def __init__(self, client: redis.Redis, prefix: str = "exchangeRates") -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "exchangeRates") -> RedisRateCache:
        return cls(redis.Redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get(self, key: str) -> Decimal | None:
        try:
            raw = self._client.get(self._key(key))
        except redis.RedisError as exc:
            logger.warning("Redis get failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        try:
            return Decimal(raw)
        except InvalidOperation:
            logger.warning("Discarding unparsable cached rate %r for %s", raw, key)
            self.evict(key)
            return None

    def put(self, key: str, value: Decimal) -> None:
        try:
            self._client.set(self._key(key), str(value))
        except redis.RedisError as exc:
            logger.warning("Redis set failed for %s: %s", key, exc)

    def evict(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except redis.RedisError as exc:
            logger.warning("Redis delete failed for %s: %s", key, exc)


def build_cache(config) -> RateCache:
    """Create the cache backend named by ``RATE_CACHE_BACKEND``."""

    backend = str(config.get("RATE_CACHE_BACKEND", "memory")).lower()
    if backend == "redis":
        return RedisRateCache.from_url(
            str(config.get("REDIS_URL")),
            prefix=str(config.get("RATE_CACHE_PREFIX", "exchangeRates")),
        )
    if backend == "memory":
        return InMemoryRateCache()
    raise ValueError(f"Unsupported RATE_CACHE_BACKEND '{backend}'")


def init_cache(app) -> RateCache:
    cache = build_cache(app.config)
    app.extensions[CACHE_EXT_KEY] = cache
    logger.info("Rate cache backend: %s", type(cache).__name__)
    return cache
