from fastapi import APIRouter, Depends

from pagegrade.features.analysis.dependencies.analysis import get_store
from pagegrade.features.analysis.schemas.analysis import PublicReport
from pagegrade.features.analysis.services.store.analysis_store import AnalysisStore
from pagegrade.platform.exceptions import NotFoundError

router = APIRouter(prefix="/report", tags=["report"])


@router.get("/{share_token}", response_model=PublicReport, summary="Shared report")
def get_shared_report(share_token: str, store: AnalysisStore = Depends(get_store)):
    job = store.get_by_share_token(share_token)
    if job is None:
        raise NotFoundError("Report not found")
    return PublicReport.from_job(job)
