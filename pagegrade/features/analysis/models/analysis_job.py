import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from pagegrade.features.analysis.schemas.report import ModelScoreReport, RuleScoreReport
from pagegrade.platform.schemas import CamelModel


class JobStatus(str, enum.Enum):
    """Analysis job status state machine"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.FAILED},
    # PROCESSING -> PROCESSING happens when a retried job is re-delivered
    JobStatus.PROCESSING: {JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: {JobStatus.COMPLETED},
    JobStatus.FAILED: {JobStatus.FAILED},
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    return str(uuid.uuid4())


class AnalysisJob(CamelModel):
    id: str = Field(default_factory=new_job_id)
    url: str
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # Last progress checkpoint reported by the worker
    stage: Optional[str] = None
    progress: int = 0

    rule_report: Optional[RuleScoreReport] = None
    model_report: Optional[ModelScoreReport] = None
    rule_score: Optional[int] = None
    model_score: Optional[int] = None
    total_score: Optional[int] = None

    share_token: Optional[str] = None
    error_message: Optional[str] = None
