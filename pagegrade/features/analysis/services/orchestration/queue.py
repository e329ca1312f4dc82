import logging

import redis

from pagegrade.features.analysis.models.analysis_job import AnalysisJob
from pagegrade.platform.config import settings

logger = logging.getLogger(__name__)

QUEUED_KEY_PREFIX = "analysis:queued"
# Slack for time spent waiting in the queue before the first attempt starts
LOCK_TTL_MARGIN_SECONDS = 60 * 5


def queued_key(job_id: str) -> str:
    return f"{QUEUED_KEY_PREFIX}:{job_id}"


def lock_ttl() -> int:
    """
    How long the enqueue lock is held: every attempt running to the task time
    limit, plus the retry backoff between attempts, plus queueing slack.
    `ANALYSIS_LOCK_TTL_SECONDS` overrides the derived value.
    """
    if settings.ANALYSIS_LOCK_TTL_SECONDS:
        return settings.ANALYSIS_LOCK_TTL_SECONDS

    retries = settings.ANALYSIS_MAX_RETRIES
    attempts = retries + 1
    backoff = sum(settings.ANALYSIS_RETRY_BACKOFF_SECONDS * 2 ** n for n in range(retries))
    return attempts * settings.CELERY_TASK_TIME_LIMIT + backoff + LOCK_TTL_MARGIN_SECONDS


def acquire_lock(redis_client: redis.Redis, job_id: str) -> bool:
    """True when this caller now owns the enqueue slot for `job_id`."""
    return bool(
        redis_client.set(
            queued_key(job_id),
            "1",
            nx=True,
            ex=lock_ttl(),
        )
    )


def release_lock(redis_client: redis.Redis, job_id: str) -> None:
    try:
        redis_client.delete(queued_key(job_id))
    except redis.RedisError as e:
        # The key expires on its own; a stale lock only blocks re-enqueue of this id
        logger.warning(f"[{job_id}] Failed to release enqueue lock: {e}")


def enqueue_analysis(job: AnalysisJob, redis_client: redis.Redis) -> bool:
    """
    Send `job` to the analysis queue.

    Returns False when the same job id is already queued or running. The Celery
    task id is the job id, so broker-level duplicates are also identifiable.
    """
    from pagegrade.features.analysis.workers.tasks import analyze_url

    if not acquire_lock(redis_client, job.id):
        logger.info(f"[{job.id}] Already queued, skipping duplicate enqueue")
        return False

    try:
        analyze_url.apply_async(args=[job.id, job.url], task_id=job.id)
    except Exception:
        release_lock(redis_client, job.id)
        raise

    logger.info(f"[{job.id}] Enqueued analysis for {job.url}")
    return True
