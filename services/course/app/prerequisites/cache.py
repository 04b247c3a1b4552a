"""Cache helpers for the prerequisites domain.

Key schema
----------
course:prerequisites:{course_id}   JSON list   TTL 1 h   ordered edge list

The service depends on the ``PrerequisiteCache`` protocol, never on a
process-wide client. ``RedisPrerequisiteCache`` is the production backend;
its operations are best-effort: a Redis outage degrades to a cache miss
instead of failing the request.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DEFAULT_PREREQUISITES_TTL_S: int = 3600  # 1 hour


class PrerequisiteCache(Protocol):
    ttl: int

    async def get(self, key: str) -> Any | None: ...

    async def put(self, key: str, value: Any, ttl: int) -> None: ...

    async def forget(self, key: str) -> None: ...


class RedisPrerequisiteCache:
    """JSON-over-Redis implementation of ``PrerequisiteCache``."""

    def __init__(self, redis: Redis, ttl: int = DEFAULT_PREREQUISITES_TTL_S):
        self._redis = redis
        self.ttl = ttl

    async def get(self, key: str) -> Any | None:
        try:
            val = await self._redis.get(key)
        except RedisError:
            logger.warning("Redis GET failed for %s, treating as miss", key, exc_info=True)
            return None
        return json.loads(val) if val is not None else None

    async def put(self, key: str, value: Any, ttl: int) -> None:
        try:
            await self._redis.set(key, json.dumps(value), ex=ttl)
        except RedisError:
            logger.warning("Redis SET failed for %s", key, exc_info=True)

    async def forget(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError:
            logger.warning("Redis DEL failed for %s, entry expires by TTL", key, exc_info=True)


# -- Edge list --

def prerequisites_key(course_id: UUID) -> str:
    return f"course:prerequisites:{course_id}"


async def get_cached_prerequisites(
    course_id: UUID, cache: PrerequisiteCache,
) -> list[dict] | None:
    """Return the cached serialised edge list, or None on a miss."""
    return await cache.get(prerequisites_key(course_id))


async def set_cached_prerequisites(
    course_id: UUID,
    edges: list[dict],
    cache: PrerequisiteCache,
) -> None:
    await cache.put(prerequisites_key(course_id), edges, cache.ttl)


async def invalidate_prerequisites(course_id: UUID, cache: PrerequisiteCache) -> None:
    await cache.forget(prerequisites_key(course_id))
