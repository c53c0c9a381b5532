"""
Redis caching service.

CACHING STRATEGY
================

What we cache:
  - Facility catalogue listings (JSON-serialized response bodies)
    Key pattern: "facilities:list:<query>"
  - Per-user unread notification counts
    Key pattern: "notifications:unread:<user_id>"

Why:
  - Clients poll the unread count every ~30s from every open tab; it is by
    far the hottest read in the system
  - The facility catalogue changes only through admin CRUD

Invalidation strategy:
  - Facility create/update/delete: delete every "facilities:list:*" key (SCAN)
  - Any notification insert/read/delete for a user: delete that user's
    unread key
  - TTL-based expiry as safety net

Bookings and ticket state are never cached: the conflict resolver and the
lifecycle state machines must read committed database state.

Redis is advisory. When it is disabled or unreachable every helper degrades
to a no-op / miss and the database answers.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
from campus_ops.core.config import get_settings
from campus_ops.core.logging import get_logger
from campus_ops.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None

FACILITY_LIST_PREFIX = "facilities:list:"
UNREAD_COUNT_PREFIX = "notifications:unread:"


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_facility_list_key(**query: Any) -> str:
    parts = "&".join(f"{k}={query[k]}" for k in sorted(query))
    return f"{FACILITY_LIST_PREFIX}{parts}"


def _unread_key(user_id: int) -> str:
    return f"{UNREAD_COUNT_PREFIX}{user_id}"


async def get_cached_json(key: str) -> Optional[Any]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_json(key: str, data: Any, ttl: Optional[int] = None) -> None:
    client = await get_redis()
    if not client:
        return

    ttl = ttl or settings.REDIS_CACHE_TTL
    try:
        await client.setex(key, ttl, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=ttl)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_facility_cache() -> None:
    """Drop every cached facility listing."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{FACILITY_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", prefix=FACILITY_LIST_PREFIX, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cached_unread_count(user_id: int) -> Optional[int]:
    cached = await get_cached_json(_unread_key(user_id))
    return int(cached) if cached is not None else None


async def set_cached_unread_count(user_id: int, count: int) -> None:
    await set_cached_json(_unread_key(user_id), count)


async def invalidate_unread_count(*user_ids: int) -> None:
    client = await get_redis()
    if not client or not user_ids:
        return

    try:
        await client.delete(*(_unread_key(uid) for uid in set(user_ids)))
    except Exception as e:
        logger.error("cache_invalidation_error", user_ids=list(user_ids), error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
