"""
Health checks: database and Redis connectivity
"""
import logging
from typing import Tuple

import redis
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings

logger = logging.getLogger(__name__)


async def check_db() -> Tuple[bool, str]:
    """Check database connectivity"""
    if not getattr(settings, "DATABASE_URL", None) or not settings.DATABASE_URL.strip():
        return False, "DATABASE_URL is not configured"
    try:
        from app.core.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True, "ok"
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Health check: database failed: %s", e)
        return False, str(e)


def check_redis() -> Tuple[bool, str]:
    """Check Redis connectivity"""
    if not getattr(settings, "REDIS_URL", None) or not settings.REDIS_URL.strip():
        return False, "REDIS_URL is not configured"
    try:
        from app.services.cache_service import ping
        ping()
        return True, "ok"
    except (redis.RedisError, OSError) as e:
        logger.warning("Health check: Redis failed: %s", e)
        return False, str(e)
