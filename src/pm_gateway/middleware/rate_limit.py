"""Fixed-window rate limiting on Redis.

    count = INCR ratelimit:{group}:{user_id}
    if count == 1: EXPIRE key window
    if count > limit: 429 (RateLimitError 9001)

Used as a dependency on the trade endpoints (TRADE_RATE_LIMIT_PER_MIN per user).
"""

from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends

from config.settings import settings
from src.pm_common.errors import RateLimitError
from src.pm_common.redis_client import get_redis
from src.pm_gateway.auth.dependencies import get_current_user_id


async def check_rate_limit(
    redis: aioredis.Redis, key: str, limit: int, window_seconds: int = 60
) -> int:
    """Count one hit on `key`; raise RateLimitError once `limit` is exceeded."""
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, window_seconds)
    if count > limit:
        raise RateLimitError()
    return int(count)


async def trade_rate_limit(
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> str:
    redis = await get_redis()
    await check_rate_limit(
        redis, f"ratelimit:trade:{user_id}", settings.TRADE_RATE_LIMIT_PER_MIN
    )
    return user_id
