"""Read-through cache over Redis.

Entries are advisory: a miss is always safe, and any failure talking to Redis
is logged and treated as a miss so the surrounding request carries on.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Optional

import redis
from fastapi import Request

from .config import Settings

logger = logging.getLogger(__name__)

SEARCH_INDEX_KEY = "search:index"


class ResourceClass(str, Enum):
    SEARCH = "search"
    USER = "user"
    ROOM = "room"
    HOTEL = "hotel"


def _encode(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip().lower()
    return str(value)


@dataclass(frozen=True)
class CacheKey:
    resource: ResourceClass
    tag: str
    params: tuple[tuple[str, str], ...] = ()

    @classmethod
    def of(cls, resource: ResourceClass, tag: str, **params) -> "CacheKey":
        """Parameters that are None are omitted; the rest are rendered in name order."""
        items = tuple(sorted((name, _encode(value)) for name, value in params.items() if value is not None))
        return cls(resource, tag, items)

    def __str__(self) -> str:
        return ":".join([self.tag, *(f"{name}={value}" for name, value in self.params)])


# ---- Key builders ----

def search_key(**filters) -> CacheKey:
    return CacheKey.of(ResourceClass.SEARCH, "search", **filters)


def room_key(room_id: int) -> CacheKey:
    return CacheKey.of(ResourceClass.ROOM, f"room:{room_id}")


def host_rooms_key(user_id: int) -> CacheKey:
    return CacheKey.of(ResourceClass.USER, f"user:{user_id}:rooms")


def booking_list_key(user_id: int) -> CacheKey:
    return CacheKey.of(ResourceClass.USER, f"user:{user_id}:bookings")


def booking_key(user_id: int, booking_id: int) -> CacheKey:
    return CacheKey.of(ResourceClass.USER, f"user:{user_id}:booking:{booking_id}")


def profile_key(user_id: int) -> CacheKey:
    return CacheKey.of(ResourceClass.USER, f"user:{user_id}:profile")


def hotel_key(hotel_id: int) -> CacheKey:
    return CacheKey.of(ResourceClass.HOTEL, f"hotel:{hotel_id}")


def hotel_list_key(city: Optional[str] = None) -> CacheKey:
    return CacheKey.of(ResourceClass.HOTEL, "hotels", city=city)


class CacheStore:
    """
    Thin best-effort wrapper around a Redis client.
    With no client (cache disabled) every read misses and every write is a no-op.
    """

    def __init__(self, client: Optional[redis.Redis], settings: Settings):
        self.client = client
        self.prefix = settings.CACHE_KEY_PREFIX
        self.ttls = {
            ResourceClass.SEARCH: settings.CACHE_TTL_SEARCH,
            ResourceClass.USER: settings.CACHE_TTL_USER,
            ResourceClass.ROOM: settings.CACHE_TTL_ROOM,
            ResourceClass.HOTEL: settings.CACHE_TTL_HOTEL,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheStore":
        if not settings.CACHE_ENABLED:
            logger.info("Cache disabled; all reads go to the database")
            return cls(None, settings)
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.CACHE_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.CACHE_SOCKET_TIMEOUT,
        )
        return cls(client, settings)

    def _full(self, key) -> str:
        return f"{self.prefix}:{key}"

    def ttl_for(self, key: CacheKey) -> int:
        return self.ttls[key.resource]

    def get(self, key: CacheKey) -> Any:
        if self.client is None:
            return None
        try:
            raw = self.client.get(self._full(key))
        except redis.RedisError as err:
            logger.warning("Cache read error for %s: %s", key, err)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as err:
            logger.warning("Discarding undecodable cache entry %s: %s", key, err)
            return None

    def set(self, key: CacheKey, value: Any, ttl: Optional[int] = None):
        if self.client is None:
            return
        ttl = ttl if ttl is not None else self.ttl_for(key)
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as err:
            logger.warning("Cache value for %s is not serializable: %s", key, err)
            return
        try:
            full_key = self._full(key)
            pipe = self.client.pipeline()
            pipe.set(full_key, payload, ex=ttl)
            if key.resource is ResourceClass.SEARCH:
                # Registered so search invalidation never scans the keyspace.
                # The index expires with its newest entry so idle periods let it drain.
                index = self._full(SEARCH_INDEX_KEY)
                pipe.sadd(index, full_key)
                pipe.expire(index, ttl)
            pipe.execute()
        except redis.RedisError as err:
            logger.warning("Cache write error for %s: %s", key, err)

    def delete(self, *keys) -> int:
        if self.client is None or not keys:
            return 0
        try:
            return self.client.delete(*(self._full(k) for k in keys))
        except redis.RedisError as err:
            logger.warning("Cache delete error for %s: %s", ", ".join(map(str, keys)), err)
            return 0

    def delete_pattern(self, pattern: str) -> int:
        """SCAN for keys matching a glob pattern and delete them in batches."""
        if self.client is None:
            return 0
        removed = 0
        try:
            batch: list[str] = []
            for full_key in self.client.scan_iter(match=self._full(pattern), count=500):
                batch.append(full_key)
                if len(batch) >= 500:
                    removed += self.client.delete(*batch)
                    batch = []
            if batch:
                removed += self.client.delete(*batch)
        except redis.RedisError as err:
            logger.warning("Cache pattern delete error for %s: %s", pattern, err)
        return removed

    def delete_search_results(self) -> int:
        """
        Evict every registered search result.
        Only the members that were read are removed from the index, so a key
        registered concurrently stays indexed for the next eviction.
        """
        if self.client is None:
            return 0
        index = self._full(SEARCH_INDEX_KEY)
        try:
            keys: Iterable[str] = list(self.client.smembers(index))
            if not keys:
                return 0
            pipe = self.client.pipeline()
            pipe.delete(*keys)
            pipe.srem(index, *keys)
            results = pipe.execute()
            return results[0]
        except redis.RedisError as err:
            logger.warning("Cache search invalidation error: %s", err)
            return 0

    def close(self):
        if self.client is None:
            return
        try:
            self.client.close()
        except redis.RedisError as err:
            logger.warning("Error closing cache client: %s", err)


def read_through(cache: CacheStore, key: CacheKey, compute: Callable[[], Any]) -> Any:
    """
    Return the cached value for key, or compute it and cache it with the key's class TTL.
    Exceptions from compute propagate and nothing is stored.
    """
    cached = cache.get(key)
    if cached is not None:
        return cached
    value = compute()
    cache.set(key, value)
    return value


def get_cache(request: Request) -> CacheStore:
    return request.app.state.cache
