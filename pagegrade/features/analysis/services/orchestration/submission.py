import logging
from typing import Callable, Optional

from pagegrade.features.analysis.models.analysis_job import AnalysisJob, JobStatus
from pagegrade.features.analysis.services.store.analysis_store import AnalysisStore
from pagegrade.platform.exceptions import PageGradeError, ValidationError
from pagegrade.platform.utils.url_validator import validate_url

logger = logging.getLogger(__name__)


def submit_analysis(
    raw_url: Optional[str],
    store: AnalysisStore,
    enqueue: Callable[[AnalysisJob], bool],
) -> AnalysisJob:
    """
    Validate `raw_url`, create a PENDING job and enqueue it.

    Raises ValidationError for a missing or malformed URL. If the broker
    rejects the job it is marked FAILED before the error propagates.
    """
    if raw_url is None or not raw_url.strip():
        raise ValidationError("URL is required")

    is_valid, url, error_message = validate_url(raw_url)
    if not is_valid:
        raise ValidationError(f"Invalid URL: {error_message}")

    job = store.create(url)

    try:
        enqueue(job)
    except Exception as e:
        logger.error(f"[{job.id}] Failed to enqueue analysis: {e}", exc_info=True)
        store.update(job.id, status=JobStatus.FAILED, error_message="Failed to queue analysis")
        raise PageGradeError("Failed to queue analysis") from e

    return job
