# backend/portfolio_tracker/services/cache.py
"""
Result caching for equity curves, simulations and portfolio views.

Two tiers:
    Local  - TTLCache, in-process, holds full-history equity curves
    Shared - RedisCache when REDIS_URL is set, otherwise a TTLCache;
             holds simulation results and portfolio views

Both implement the CacheBackend protocol (get / set / delete_prefix), so
services never know which store they talk to. Shared-tier values are plain
JSON-compatible payloads.

Cache key formats:
    equity:{portfolio_id}:{start|first}:{end|today}
    portfolio:{portfolio_id}:{view}:{sort_by}:{order}
    dca:{asset}:{start}:{end}:{amount}:{interval}:{pair|single}
    preset:{name}:{start}:{end}

Keys always end a portfolio id with ':' so invalidating portfolio 1 never
touches portfolio 12.
"""

import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable

import redis

from portfolio_tracker.services.constants import (
    DCA_CACHE_PREFIX,
    EQUITY_CACHE_PREFIX,
    PORTFOLIO_VIEW_CACHE_PREFIX,
    PRESET_CACHE_PREFIX,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CACHE KEYS
# =============================================================================


class CacheKeys:
    """Builders for every cache key used by the services."""

    @staticmethod
    def equity_curve(
        portfolio_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> str:
        start = start_date.isoformat() if start_date else "first"
        end = end_date.isoformat() if end_date else "today"
        return f"{EQUITY_CACHE_PREFIX}:{portfolio_id}:{start}:{end}"

    @staticmethod
    def equity_prefix(portfolio_id: int) -> str:
        return f"{EQUITY_CACHE_PREFIX}:{portfolio_id}:"

    @staticmethod
    def portfolio_view(
        portfolio_id: int,
        view: str,
        sort_by: str = "default",
        order: str = "default",
    ) -> str:
        return f"{PORTFOLIO_VIEW_CACHE_PREFIX}:{portfolio_id}:{view}:{sort_by}:{order}"

    @staticmethod
    def portfolio_prefix(portfolio_id: int) -> str:
        return f"{PORTFOLIO_VIEW_CACHE_PREFIX}:{portfolio_id}:"

    @staticmethod
    def dca(
        asset: str,
        start_date: date,
        end_date: date,
        amount: Decimal,
        interval: int,
        pair: str | None = None,
    ) -> str:
        return (
            f"{DCA_CACHE_PREFIX}:{asset}:{start_date.isoformat()}:{end_date.isoformat()}:"
            f"{amount.normalize():f}:{interval}:{pair or 'single'}"
        )

    @staticmethod
    def preset(name: str, start_date: date, end_date: date) -> str:
        return f"{PRESET_CACHE_PREFIX}:{name}:{start_date.isoformat()}:{end_date.isoformat()}"


# =============================================================================
# IN-PROCESS TTL CACHE
# =============================================================================


@dataclass
class CacheEntry:
    """A cached value with the clock readings it was stored and expires at."""

    value: Any
    created_at: float
    expires_at: float


EvictionPolicy = Callable[["OrderedDict[str, CacheEntry]", int], list[str]]


def evict_oldest_half(entries: "OrderedDict[str, CacheEntry]", max_entries: int) -> list[str]:
    """
    Once the cache holds more than max_entries, drop the older half.

    Entries are ordered by insertion, so the oldest are at the front.
    """
    if len(entries) <= max_entries:
        return []
    return list(entries.keys())[: len(entries) // 2]


def evict_oldest(entries: "OrderedDict[str, CacheEntry]", max_entries: int) -> list[str]:
    """Drop just enough of the oldest entries to get back to max_entries."""
    overflow = len(entries) - max_entries
    if overflow <= 0:
        return []
    return list(entries.keys())[:overflow]


class TTLCache:
    """
    Thread-safe bounded cache with per-entry TTL.

    Expired entries are dropped lazily on read and swept on every write.
    When the entry count exceeds max_entries the eviction policy picks
    victims (by default the oldest half).

    The clock is injectable so tests control expiry without sleeping.

    Thread Safety:
        All access goes through a threading.Lock. Sufficient for a single
        worker; multi-worker deployments should use RedisCache for the
        shared tier.
    """

    def __init__(
            self,
            ttl_seconds: int,
            max_entries: int,
            clock: Callable[[], float] = time.monotonic,
            eviction_policy: EvictionPolicy = evict_oldest_half,
            name: str = "cache",
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._eviction_policy = eviction_policy
        self._name = name
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Cached value, or None if absent or expired."""
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def get_entry(self, key: str) -> CacheEntry | None:
        """Cached entry with its timestamps, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"{self._name} miss for {key}")
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                logger.debug(f"{self._name} expired for {key}")
                return None
        logger.debug(f"{self._name} hit for {key}")
        return entry

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store value, sweeping expired entries and evicting past the ceiling."""
        now = self._clock()
        ttl = ttl_seconds if ttl_seconds is not None else self._ttl_seconds
        with self._lock:
            self._sweep_expired(now)
            # Re-inserting moves the key to the newest position
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)
            victims = self._eviction_policy(self._entries, self._max_entries)
            for victim in victims:
                del self._entries[victim]
        if victims:
            logger.debug(f"{self._name} evicted {len(victims)} entries")

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        """
        Delete every entry whose key starts with prefix.

        Returns:
            Number of entries deleted
        """
        with self._lock:
            keys_to_delete = [k for k in self._entries if k.startswith(prefix)]
            for key in keys_to_delete:
                del self._entries[key]

        if keys_to_delete:
            logger.debug(f"{self._name} invalidated {len(keys_to_delete)} entries for '{prefix}'")

        return len(keys_to_delete)

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"{self._name} cleared {count} entries")

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def _sweep_expired(self, now: float) -> None:
        expired = [k for k, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]


# =============================================================================
# REDIS CACHE
# =============================================================================


class RedisCache:
    """
    Shared cache tier backed by Redis.

    Values are JSON-encoded and stored with SETEX. Prefix invalidation uses
    SCAN + DEL so it never blocks the server the way KEYS would.

    A Redis outage must not break reads: every client error is logged and
    treated as a cache miss (or a no-op for writes and deletes).
    """

    def __init__(self, client: redis.Redis, default_ttl_seconds: int = 3600):
        self._client = client
        self._default_ttl_seconds = default_ttl_seconds

    @classmethod
    def from_url(cls, url: str, default_ttl_seconds: int = 3600) -> "RedisCache":
        return cls(redis.from_url(url, decode_responses=True), default_ttl_seconds)

    def ping(self) -> bool:
        """True if the server answers PING."""
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def get(self, key: str) -> Any | None:
        try:
            raw = self._client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Redis get failed for {key}: {e}")
            return None
        if raw is None:
            logger.debug(f"redis miss for {key}")
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl_seconds
        try:
            self._client.setex(key, ttl, json.dumps(value))
        except redis.RedisError as e:
            logger.warning(f"Redis set failed for {key}: {e}")

    def delete_prefix(self, prefix: str) -> int:
        try:
            keys = list(self._client.scan_iter(match=f"{prefix}*", count=100))
            if not keys:
                return 0
            deleted = self._client.delete(*keys)
        except redis.RedisError as e:
            # Stale entries survive until their TTL expires
            logger.error(f"Redis invalidation failed for '{prefix}', entries may be stale: {e}")
            return 0
        logger.debug(f"redis invalidated {deleted} entries for '{prefix}'")
        return int(deleted)
