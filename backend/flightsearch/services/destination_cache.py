"""
Cache for the explore destination listing.

The listing changes rarely and is requested on every explore screen, so it
is cached per (departure, arrival_type, arrival_id). The cache is an
explicit collaborator handed to SearchSession, never module state:

    get(key)          cached list or None (missing / expired)
    set(key, items)   store with the configured TTL
    invalidate(key)   drop one key, or everything when key is None

Backends: in-process dict (default) or Redis (DESTINATION_CACHE_BACKEND=redis).
"""
import logging
import time
from abc import ABC, abstractmethod

import redis.asyncio as aioredis
from pydantic import TypeAdapter

from flightsearch.config import settings
from flightsearch.models.explore import ExploreDestination
from flightsearch.services.clients.explore import ExploreClient

logger = logging.getLogger(__name__)

_KEY_PREFIX = "explore:destinations:"
_ADAPTER = TypeAdapter(list[ExploreDestination])


def cache_key(departure: str, arrival_type: str = "country", arrival_id: str | None = None) -> str:
    return ":".join([departure.upper(), arrival_type, arrival_id or "*"])


class DestinationCache(ABC):

    @abstractmethod
    async def get(self, key: str) -> list[ExploreDestination] | None:
        ...

    @abstractmethod
    async def set(self, key: str, destinations: list[ExploreDestination]) -> None:
        ...

    @abstractmethod
    async def invalidate(self, key: str | None = None) -> None:
        ...

    async def aclose(self) -> None:
        """Release backend resources (no-op by default)."""


class InMemoryDestinationCache(DestinationCache):

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.destination_cache_ttl_seconds
        # key → (destinations, expires_at_monotonic)
        self._entries: dict[str, tuple[list[ExploreDestination], float]] = {}

    async def get(self, key: str) -> list[ExploreDestination] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        destinations, expires_at = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return list(destinations)

    async def set(self, key: str, destinations: list[ExploreDestination]) -> None:
        if not destinations:
            return
        self._entries[key] = (list(destinations), time.monotonic() + self.ttl_seconds)

    async def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


class RedisDestinationCache(DestinationCache):

    def __init__(self, redis: aioredis.Redis | None = None, ttl_seconds: int | None = None) -> None:
        self._redis = redis
        self._owns_client = redis is None
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.destination_cache_ttl_seconds

    async def _client(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(settings.redis_url, decode_responses=True)
        return self._redis

    async def aclose(self) -> None:
        if self._owns_client and self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> list[ExploreDestination] | None:
        redis = await self._client()
        raw = await redis.get(_KEY_PREFIX + key)
        if raw is None:
            return None
        return _ADAPTER.validate_json(raw)

    async def set(self, key: str, destinations: list[ExploreDestination]) -> None:
        if not destinations:
            return
        redis = await self._client()
        payload = _ADAPTER.dump_json(destinations, by_alias=True)
        await redis.setex(_KEY_PREFIX + key, self.ttl_seconds, payload)

    async def invalidate(self, key: str | None = None) -> None:
        redis = await self._client()
        if key is not None:
            await redis.delete(_KEY_PREFIX + key)
            return
        keys = [k async for k in redis.scan_iter(match=_KEY_PREFIX + "*")]
        if keys:
            await redis.delete(*keys)
        logger.info("Destination cache cleared (%d keys)", len(keys))


def build_destination_cache() -> DestinationCache:
    """Pick the cache backend from DESTINATION_CACHE_BACKEND."""
    if settings.destination_cache_backend == "redis":
        return RedisDestinationCache()
    return InMemoryDestinationCache()


async def cached_destinations(
    cache: DestinationCache,
    client: ExploreClient,
    departure: str,
    arrival_type: str = "country",
    arrival_id: str | None = None,
) -> list[ExploreDestination]:
    """Destinations from cache, or from GET /api/explore/ (then cached)."""
    key = cache_key(departure, arrival_type, arrival_id)
    cached = await cache.get(key)
    if cached is not None:
        logger.debug("Destination cache hit for %s", key)
        return cached

    destinations = await client.destinations(departure, arrival_type, arrival_id)
    await cache.set(key, destinations)
    return destinations
