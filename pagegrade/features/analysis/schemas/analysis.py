"""
Analysis Schemas

Request and response models for the analysis API endpoints, plus the progress
events published while a job runs.
"""
import enum
from datetime import datetime
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel

from pagegrade.features.analysis.models.analysis_job import AnalysisJob, JobStatus
from pagegrade.features.analysis.schemas.report import ModelScoreReport, RuleScoreReport
from pagegrade.platform.schemas import CamelModel


class AnalysisRequest(BaseModel):
    """Request to analyze a URL. `url` is validated by the route."""
    url: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://example.com"
            }
        }


class AnalysisCreatedResponse(CamelModel):
    id: str
    url: str
    status: JobStatus


class Scores(CamelModel):
    rule: Optional[int] = None
    model: Optional[int] = None
    total: Optional[int] = None

    @classmethod
    def from_job(cls, job: AnalysisJob) -> "Scores":
        return cls(rule=job.rule_score, model=job.model_score, total=job.total_score)


class AnalysisStatusResponse(CamelModel):
    id: str
    status: JobStatus
    url: str
    scores: Scores
    stage: Optional[str] = None
    progress: int = 0
    updated_at: datetime

    @classmethod
    def from_job(cls, job: AnalysisJob) -> "AnalysisStatusResponse":
        return cls(
            id=job.id,
            status=job.status,
            url=job.url,
            scores=Scores.from_job(job),
            stage=job.stage,
            progress=job.progress,
            updated_at=job.updated_at,
        )


class ShareResponse(CamelModel):
    share_token: str
    share_url: str


class PublicReport(CamelModel):
    """What a share-token holder may see."""
    id: str
    url: str
    status: JobStatus
    scores: Scores
    rule_report: Optional[RuleScoreReport] = None
    model_report: Optional[ModelScoreReport] = None
    created_at: datetime

    @classmethod
    def from_job(cls, job: AnalysisJob) -> "PublicReport":
        return cls(
            id=job.id,
            url=job.url,
            status=job.status,
            scores=Scores.from_job(job),
            rule_report=job.rule_report,
            model_report=job.model_report,
            created_at=job.created_at,
        )


# ============================================================================
# Progress events
# ============================================================================

class ProgressStage(str, enum.Enum):
    fetch = "fetch"
    rule_scoring = "rule_scoring"
    model_scoring = "model_scoring"
    persist = "persist"
    retry = "retry"


class ProgressEvent(CamelModel):
    type: Literal["progress"] = "progress"
    stage: ProgressStage
    progress: int
    message: str


class CompleteEvent(CamelModel):
    type: Literal["complete"] = "complete"
    progress: int = 100
    data: Dict[str, Any]


class ErrorEvent(CamelModel):
    type: Literal["error"] = "error"
    error: str


AnalysisEvent = Union[ProgressEvent, CompleteEvent, ErrorEvent]
