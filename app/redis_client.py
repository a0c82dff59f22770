"""
Shared redis-py async client.

Keys written by the swap services:
  - ``quidax:tickers``      cached ticker board (short TTL)
  - ``swap_quote:{id}``     a live quotation, expiring with its quote window
  - ``swap_confirm:{id}``   SET NX claim taken before a quotation is confirmed
"""

import redis.asyncio as aioredis

from app.config import settings

redis = aioredis.from_url(
    settings.REDIS_URL,
    decode_responses=True,
    ssl=settings.REDIS_SSL,
    socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
)


async def get_redis() -> aioredis.Redis:
    """FastAPI dependency that provides the Redis client."""
    return redis
