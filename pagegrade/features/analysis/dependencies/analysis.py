from functools import partial
from typing import Callable

import redis
from fastapi import Depends, Request
from redis.asyncio import Redis as AsyncRedis

from pagegrade.features.analysis.models.analysis_job import AnalysisJob
from pagegrade.features.analysis.services.orchestration.queue import enqueue_analysis
from pagegrade.features.analysis.services.store.analysis_store import AnalysisStore


def get_redis(request: Request) -> redis.Redis:
    """Process-wide sync client created in the app lifespan."""
    return request.app.state.redis


def get_async_redis(request: Request) -> AsyncRedis:
    return request.app.state.async_redis


def get_store(redis_client: redis.Redis = Depends(get_redis)) -> AnalysisStore:
    return AnalysisStore(redis_client)


def get_enqueuer(
    redis_client: redis.Redis = Depends(get_redis),
) -> Callable[[AnalysisJob], bool]:
    """
    Returns the callable that hands a job to the worker queue.

    Overridden in tests so no broker is needed.
    """
    return partial(enqueue_analysis, redis_client=redis_client)
