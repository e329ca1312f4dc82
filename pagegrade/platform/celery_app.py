from celery import Celery
from kombu import Queue

from pagegrade.platform.config import settings

ANALYSIS_QUEUE = "analysis"


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Queue Structure:
    - analysis: one task per analysis job (fetch, score, persist)
    - default: anything not explicitly routed

    Start a worker with:
        celery -A pagegrade.platform.celery_app worker -Q analysis
    """
    celery_app = Celery(
        "pagegrade",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    # Task serialization
    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer=settings.CELERY_RESULT_SERIALIZER,
        accept_content=[settings.CELERY_ACCEPT_CONTENT],
        timezone="UTC",
        enable_utc=True,
        task_track_started=settings.CELERY_TASK_TRACK_STARTED,
        task_time_limit=settings.CELERY_TASK_TIME_LIMIT,

        # Job state lives in the analysis store; task results are only diagnostic
        result_expires=3600,

        task_routes={
            "pagegrade.features.analysis.workers.tasks.analyze_url": {"queue": ANALYSIS_QUEUE},
        },

        task_queues=(
            Queue("default"),
            Queue(ANALYSIS_QUEUE),
        ),

        task_default_queue="default",

        # Bounded pool; each slot runs one job at a time
        worker_concurrency=settings.ANALYSIS_WORKER_CONCURRENCY,
        worker_prefetch_multiplier=1,  # Fair distribution

        # Retry settings
        task_acks_late=True,  # Acknowledge after task completes
        task_reject_on_worker_lost=True,  # Requeue if worker dies
    )

    # Auto-discover tasks in the workers module
    celery_app.autodiscover_tasks(["pagegrade.features.analysis.workers"])

    return celery_app


# Global Celery app instance
celery_app = create_celery_app()
