import logging
import secrets
from typing import Any, Optional

import redis

from pagegrade.features.analysis.models.analysis_job import AnalysisJob, JobStatus, utcnow
from pagegrade.platform.config import settings
from pagegrade.platform.exceptions import (
    InvalidStatusTransition,
    JobNotFoundError,
    PageGradeError,
)

logger = logging.getLogger(__name__)

JOB_KEY_PREFIX = "analysis"
SHARE_KEY_PREFIX = "share"
SHARE_OWNER_KEY_PREFIX = "share_of"
SHARE_TOKEN_ATTEMPTS = 5


def job_key(job_id: str) -> str:
    return f"{JOB_KEY_PREFIX}:{job_id}"


def share_key(token: str) -> str:
    return f"{SHARE_KEY_PREFIX}:{token}"


def share_owner_key(job_id: str) -> str:
    return f"{SHARE_OWNER_KEY_PREFIX}:{job_id}"


def generate_share_token() -> str:
    """128 bits of randomness as 32 hex chars."""
    return secrets.token_hex(16)


class AnalysisStore:
    """
    Ephemeral job records in Redis.

    analysis:{id}  -> job JSON
    share:{token}  -> job id
    share_of:{id}  -> token

    All keys carry the same TTL; every write refreshes it. Updates are
    read-merge-write with last-write-wins semantics.
    """

    def __init__(self, redis_client: redis.Redis, ttl: Optional[int] = None):
        self.redis = redis_client
        self.ttl = ttl or settings.ANALYSIS_TTL_SECONDS

    def create(self, url: str) -> AnalysisJob:
        job = AnalysisJob(url=url)
        self.put(job)
        logger.info(f"[{job.id}] Created analysis job for {url}")
        return job

    def put(self, job: AnalysisJob) -> None:
        self.redis.set(job_key(job.id), job.model_dump_json(by_alias=True), ex=self.ttl)
        if job.share_token:
            self.redis.expire(share_key(job.share_token), self.ttl)
            self.redis.expire(share_owner_key(job.id), self.ttl)

    def get(self, job_id: str) -> Optional[AnalysisJob]:
        raw = self.redis.get(job_key(job_id))
        if raw is None:
            return None
        return AnalysisJob.model_validate_json(raw)

    def get_or_raise(self, job_id: str) -> AnalysisJob:
        job = self.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Analysis {job_id} not found")
        return job

    def update(self, job_id: str, **fields: Any) -> AnalysisJob:
        """
        Merge `fields` into the stored job and bump `updated_at`.

        Raises JobNotFoundError for an unknown id and InvalidStatusTransition
        when the new status would move the job backwards or re-open it.
        """
        job = self.get_or_raise(job_id)

        if "status" in fields:
            target = JobStatus(fields["status"])
            if not job.status.can_transition_to(target):
                raise InvalidStatusTransition(
                    f"Cannot move analysis {job_id} from {job.status.value} to {target.value}"
                )
            fields["status"] = target

        merged = job.model_dump()
        merged.update(fields)
        merged["updated_at"] = utcnow()
        if not merged.get("share_token"):
            # A share may have been minted after this record was read
            merged["share_token"] = self.redis.get(share_owner_key(job_id))

        updated = AnalysisJob.model_validate(merged)
        self.put(updated)
        return updated

    def create_share_token(self, job_id: str) -> Optional[str]:
        """
        Return the job's share token, minting one on first call.
        Returns None for an unknown job.

        The job's token is owned by `share_of:{id}`, claimed with SET NX, so
        concurrent callers and stale record write-backs all resolve to the
        same token.
        """
        job = self.get(job_id)
        if job is None:
            return None

        existing = self.redis.get(share_owner_key(job.id)) or job.share_token
        if existing:
            return self._assert_share(job, existing)

        for _ in range(SHARE_TOKEN_ATTEMPTS):
            token = generate_share_token()
            if not self.redis.set(share_key(token), job.id, nx=True, ex=self.ttl):
                logger.warning(f"[{job.id}] Share token collision, regenerating")
                continue

            if not self.redis.set(share_owner_key(job.id), token, nx=True, ex=self.ttl):
                # Another request claimed the job first
                self.redis.delete(share_key(token))
                return self._assert_share(job, self.redis.get(share_owner_key(job.id)))

            self.update(job.id, share_token=token)
            logger.info(f"[{job.id}] Created share token")
            return token

        raise PageGradeError("Could not allocate a share token")

    def _assert_share(self, job: AnalysisJob, token: str) -> str:
        # Re-assert both mappings in case they expired independently of the record
        self.redis.set(share_key(token), job.id, ex=self.ttl)
        self.redis.set(share_owner_key(job.id), token, ex=self.ttl)
        if job.share_token != token:
            self.update(job.id, share_token=token)
        return token

    def get_by_share_token(self, token: str) -> Optional[AnalysisJob]:
        job_id = self.redis.get(share_key(token))
        if job_id is None:
            return None
        return self.get(job_id)
