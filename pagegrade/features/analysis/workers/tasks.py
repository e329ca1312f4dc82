import logging
from functools import partial
from typing import Optional

from celery import Task

from pagegrade.features.analysis.models.analysis_job import JobStatus
from pagegrade.features.analysis.schemas.analysis import ProgressStage
from pagegrade.features.analysis.services.analysis.model_scorer import ModelScorer
from pagegrade.features.analysis.services.analysis.rule_scorer import RuleScorer
from pagegrade.features.analysis.services.orchestration.pipeline import AnalysisPipeline
from pagegrade.features.analysis.services.orchestration.queue import release_lock
from pagegrade.features.analysis.services.scraping.page_fetcher import PageFetcher
from pagegrade.features.analysis.services.store.analysis_store import AnalysisStore
from pagegrade.platform.cache.redis import create_redis_client
from pagegrade.platform.celery_app import celery_app
from pagegrade.platform.config import settings
from pagegrade.platform.exceptions import (
    InvalidStatusTransition,
    JobNotFoundError,
    PageGradeError,
)
from pagegrade.platform.services.sse_helper import ProgressPublisher

logger = logging.getLogger(__name__)

# Handles are built once per worker process, on first use
_redis_client = None
_pipeline: Optional[AnalysisPipeline] = None


def get_redis():
    global _redis_client

    if _redis_client is None:
        _redis_client = create_redis_client()
    return _redis_client


def get_pipeline() -> AnalysisPipeline:
    """Get the per-process analysis pipeline."""
    global _pipeline

    if _pipeline is None:
        redis_client = get_redis()
        _pipeline = AnalysisPipeline(
            store=AnalysisStore(redis_client),
            fetcher=PageFetcher(),
            rule_scorer=RuleScorer(),
            model_scorer=ModelScorer.from_settings(),
            publisher=ProgressPublisher(redis_client),
            on_finished=partial(release_lock, redis_client),
        )
    return _pipeline


class AnalysisTask(Task):
    """Reports retries as progress and marks the job FAILED once retries run out."""

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        job_id = args[0]
        attempt = self.request.retries + 1
        message = f"Attempt {attempt} failed ({_error_message(exc)}), retrying"
        logger.warning(f"[{job_id}] {message}")

        pipeline = get_pipeline()
        try:
            # Keep the last checkpoint so progress never goes backwards
            job = pipeline.store.get_or_raise(job_id)
            pipeline.report(job_id, ProgressStage.retry, job.progress, message)
        except PageGradeError as e:
            logger.warning(f"[{job_id}] Could not record retry: {e.message}")

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        job_id = args[0]
        error_message = _error_message(exc)
        logger.error(f"[{job_id}] Analysis failed: {error_message}")

        pipeline = get_pipeline()
        try:
            pipeline.store.update(job_id, status=JobStatus.FAILED, error_message=error_message)
        except PageGradeError as e:
            logger.warning(f"[{job_id}] Could not mark job failed: {e.message}")

        pipeline.publisher.publish_error(job_id, error_message)
        release_lock(get_redis(), job_id)


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, PageGradeError):
        return exc.message
    return str(exc) or exc.__class__.__name__


@celery_app.task(
    bind=True,
    base=AnalysisTask,
    name="pagegrade.features.analysis.workers.tasks.analyze_url",
    max_retries=settings.ANALYSIS_MAX_RETRIES,
    autoretry_for=(Exception,),
    dont_autoretry_for=(JobNotFoundError, InvalidStatusTransition),
    retry_backoff=settings.ANALYSIS_RETRY_BACKOFF_SECONDS,
    retry_jitter=False,
    acks_late=True,
)
def analyze_url(self, job_id: str, url: str) -> dict:
    """
    Analyze one page: fetch, rule score, model score, persist.

    Args:
        job_id: The analysis job ID
        url: Normalized URL to analyze

    Returns:
        Dict with the job id, final status and total score
    """
    logger.info(f"[{job_id}] Attempt {self.request.retries + 1} for {url}")

    job = get_pipeline().run(job_id, url)

    return {
        "job_id": job_id,
        "status": job.status.value,
        "total_score": job.total_score,
    }
