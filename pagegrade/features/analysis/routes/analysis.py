from typing import Callable

from fastapi import APIRouter, Depends, status

from pagegrade.features.analysis.dependencies.analysis import get_enqueuer, get_store
from pagegrade.features.analysis.models.analysis_job import AnalysisJob
from pagegrade.features.analysis.schemas.analysis import (
    AnalysisCreatedResponse,
    AnalysisRequest,
    AnalysisStatusResponse,
    ShareResponse,
)
from pagegrade.features.analysis.services.orchestration.submission import submit_analysis
from pagegrade.features.analysis.services.store.analysis_store import AnalysisStore
from pagegrade.platform.config import settings
from pagegrade.platform.exceptions import JobNotFoundError
from pagegrade.platform.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.post(
    "",
    response_model=AnalysisCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Queue a URL for analysis",
)
def create_analysis(
    payload: AnalysisRequest,
    store: AnalysisStore = Depends(get_store),
    enqueue: Callable[[AnalysisJob], bool] = Depends(get_enqueuer),
):
    job = submit_analysis(payload.url, store, enqueue)
    logger.info(f"[{job.id}] Analysis queued for {job.url}")
    return AnalysisCreatedResponse(id=job.id, url=job.url, status=job.status)


@router.get("/{job_id}", response_model=AnalysisJob, summary="Full analysis record")
def get_analysis(job_id: str, store: AnalysisStore = Depends(get_store)):
    return store.get_or_raise(job_id)


@router.get(
    "/{job_id}/status",
    response_model=AnalysisStatusResponse,
    summary="Poll analysis status",
)
def get_analysis_status(job_id: str, store: AnalysisStore = Depends(get_store)):
    """
    Lightweight projection for polling clients: status, scores and the last
    progress checkpoint the worker reported.
    """
    job = store.get_or_raise(job_id)
    return AnalysisStatusResponse.from_job(job)


@router.post("/{job_id}/share", response_model=ShareResponse, summary="Create a share link")
def share_analysis(job_id: str, store: AnalysisStore = Depends(get_store)):
    """Returns the same token on every call for a given analysis."""
    share_token = store.create_share_token(job_id)
    if share_token is None:
        raise JobNotFoundError(f"Analysis {job_id} not found")

    return ShareResponse(
        share_token=share_token,
        share_url=f"{settings.PUBLIC_APP_URL}/report/{share_token}",
    )
