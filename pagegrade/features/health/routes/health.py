import redis
from fastapi import APIRouter, Depends, status

from pagegrade.features.analysis.dependencies.analysis import get_redis
from pagegrade.platform.config import settings
from pagegrade.platform.logger import get_logger
from pagegrade.platform.response import api_response

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health", tags=["health"])
def health_check(redis_client: redis.Redis = Depends(get_redis)):
    try:
        redis_ok = bool(redis_client.ping())
    except redis.RedisError as e:
        logger.warning(f"Health check: Redis unreachable: {e}")
        redis_ok = False

    return api_response(
        data={
            "status": "ok" if redis_ok else "degraded",
            "service": settings.APP_NAME,
            "redis": "ok" if redis_ok else "unavailable",
        },
        message="Service is healthy" if redis_ok else "Service is degraded",
        status_code=status.HTTP_200_OK,
    )
