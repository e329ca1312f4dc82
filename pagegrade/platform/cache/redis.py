import redis
from redis.asyncio import Redis as AsyncRedis

from pagegrade.platform.config import settings


def create_redis_client(url: str = None) -> redis.Redis:
    """Sync client used by the store, the worker and the progress publisher."""
    return redis.Redis.from_url(
        url or settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
    )


def create_async_redis_client(url: str = None) -> AsyncRedis:
    """Async client used by the SSE endpoints for pub/sub."""
    return AsyncRedis.from_url(
        url or settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
    )
