"""
Progress event publishing over Redis pub/sub.

The worker publishes analysis progress on `analysis_progress:{job_id}`; the SSE
endpoints subscribe to the same channel and forward each event to the client.
"""

import json
import logging
from typing import Any, Dict

import redis

from pagegrade.features.analysis.schemas.analysis import (
    AnalysisEvent,
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    ProgressStage,
)

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "analysis_progress"


def progress_channel(job_id: str) -> str:
    return f"{CHANNEL_PREFIX}:{job_id}"


def encode_event(event: AnalysisEvent) -> str:
    return json.dumps(event.model_dump(mode="json", by_alias=True))


class ProgressPublisher:
    """
    Publishes progress events for analysis jobs.

    Publishing is fire-and-forget: a Redis error is logged and reported as
    False, never raised into the pipeline.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def publish(self, job_id: str, event: AnalysisEvent) -> bool:
        channel = progress_channel(job_id)
        try:
            self.redis.publish(channel, encode_event(event))
        except redis.RedisError as e:
            logger.error(f"Failed to publish progress event for job {job_id}: {e}", exc_info=True)
            return False

        logger.debug(f"Published {event.type} event to {channel}")
        return True

    def publish_progress(self, job_id: str, stage: ProgressStage, progress: int, message: str) -> bool:
        """
        Example:
            publisher.publish_progress(job_id, ProgressStage.fetch, 10, "Fetching page")
        """
        return self.publish(
            job_id,
            ProgressEvent(stage=stage, progress=progress, message=message),
        )

    def publish_complete(self, job_id: str, data: Dict[str, Any]) -> bool:
        return self.publish(job_id, CompleteEvent(data=data))

    def publish_error(self, job_id: str, error_message: str) -> bool:
        return self.publish(job_id, ErrorEvent(error=error_message))
