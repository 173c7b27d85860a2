"""
Redis cache: JSON get/set/delete with a key prefix, used for the public plan catalog
"""
import json
import logging
from typing import Any, Optional

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)

_redis_client = None


def _get_redis():
    """Lazily create the Redis client"""
    global _redis_client
    if _redis_client is None:
        try:
            _redis_client = redis.Redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
            )
        except (redis.RedisError, ValueError) as e:
            logger.warning("Redis unavailable, cache disabled: %s", e)
    return _redis_client


def _key(name: str) -> str:
    return f"{settings.CACHE_KEY_PREFIX}{name}"


def get(key: str) -> Optional[Any]:
    """Read and JSON-decode a key. Missing key or Redis error returns None."""
    if not settings.CACHE_ENABLED:
        return None
    r = _get_redis()
    if not r:
        return None
    try:
        raw = r.get(_key(key))
        if raw is None:
            return None
        return json.loads(raw)
    except (redis.RedisError, ValueError) as e:
        logger.debug("cache get failed %s: %s", key, e)
        return None


def set(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    """JSON-encode and store a value for ttl seconds (default CACHE_TTL_PLANS)"""
    if not settings.CACHE_ENABLED:
        return False
    r = _get_redis()
    if not r:
        return False
    if ttl is None:
        ttl = settings.CACHE_TTL_PLANS
    try:
        r.setex(
            _key(key),
            ttl,
            json.dumps(value, ensure_ascii=False, default=str),
        )
        return True
    except redis.RedisError as e:
        logger.debug("cache set failed %s: %s", key, e)
        return False


def delete(key: str) -> bool:
    if not settings.CACHE_ENABLED:
        return False
    r = _get_redis()
    if not r:
        return False
    try:
        r.delete(_key(key))
        return True
    except redis.RedisError as e:
        logger.debug("cache delete failed %s: %s", key, e)
        return False


def ping() -> bool:
    """Raise if Redis is unreachable; used by the health check"""
    r = _get_redis()
    if not r:
        raise redis.ConnectionError("Redis client not initialised")
    return r.ping()


# ---------- business keys ---------- #
def key_public_plans() -> str:
    return "plans:public"


def invalidate_plan_cache() -> None:
    """Call after any plan create/update/delete"""
    delete(key_public_plans())
