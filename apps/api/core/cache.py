"""
Redis caching layer.

Caches read-heavy admin aggregates (calendar coverage, content metrics).
Every helper degrades to a no-op when Redis is disabled or unreachable.
"""
import json
import logging
from typing import Any, Callable, Optional, TypeVar
import redis
from redis.exceptions import ConnectionError, TimeoutError, RedisError
from core.config import settings

logger = logging.getLogger(__name__)

# Key prefixes for question-derived aggregates
QUESTION_CACHE_PREFIXES = ("calendar_stats", "content_metrics")

T = TypeVar("T")

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Shared Redis client, or None when caching is off or Redis is down."""
    global _redis_client

    if not settings.CACHE_ENABLED:
        return None

    if _redis_client is not None:
        return _redis_client

    try:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=True,
            health_check_interval=30
        )
        _redis_client.ping()
        logger.info("Redis connection established")
        return _redis_client
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Redis unavailable: {e}. Caching disabled.")
        _redis_client = None
        return None


def cache_key(prefix: str, *args, **kwargs) -> str:
    """Build ``prefix:arg:k:v`` keys, skipping None values."""
    key_parts = [prefix]
    for arg in args:
        if arg is not None:
            key_parts.append(str(arg))
    for k, v in sorted(kwargs.items()):
        if v is not None:
            key_parts.append(f"{k}:{v}")
    return ":".join(key_parts)


def get_cache(key: str) -> Optional[Any]:
    client = get_redis_client()
    if not client:
        return None

    try:
        value = client.get(key)
        if value:
            return json.loads(value)
        return None
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Cache get error for key {key}: {e}")
        return None


def set_cache(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    client = get_redis_client()
    if not client:
        return False

    try:
        client.setex(
            key,
            ttl if ttl is not None else settings.CACHE_TTL_DEFAULT,
            json.dumps(value, default=str)
        )
        return True
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Cache set error for key {key}: {e}")
        return False


def invalidate_pattern(pattern: str) -> int:
    """Delete all keys matching pattern. Returns count of deleted keys."""
    client = get_redis_client()
    if not client:
        return 0

    try:
        keys = client.keys(pattern)
        if keys:
            return client.delete(*keys)
        return 0
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Cache invalidation error for pattern {pattern}: {e}")
        return 0


def invalidate_question_cache() -> int:
    """Drop aggregates derived from the question table (after push/import/delete)."""
    total_deleted = 0
    for prefix in QUESTION_CACHE_PREFIXES:
        total_deleted += invalidate_pattern(f"{prefix}*")
    if total_deleted:
        logger.info(f"Invalidated {total_deleted} question cache entries")
    return total_deleted


def get_or_build(key: str, build: Callable[[], T], ttl: Optional[int] = None) -> T:
    """Cached value for ``key``; on a miss, build it and store it."""
    cached = get_cache(key)
    if cached is not None:
        return cached
    value = build()
    set_cache(key, value, ttl=ttl)
    return value
