"""
SSE (Server-Sent Events) endpoints for real-time analysis progress.

Each payload message is a JSON object with a `type` of `progress`, `complete`
or `error`; the stream closes after `complete` or `error`. Keep-alive pings are
sent as named `heartbeat` events, so `EventSource.onmessage` only ever sees
payload messages.
"""
import asyncio
import json
from typing import AsyncGenerator, Awaitable, Callable, Optional

import redis
from fastapi import APIRouter, Depends, Request
from redis.asyncio import Redis as AsyncRedis
from sse_starlette.sse import EventSourceResponse
from starlette.concurrency import run_in_threadpool

from pagegrade.features.analysis.dependencies.analysis import (
    get_async_redis,
    get_enqueuer,
    get_store,
)
from pagegrade.features.analysis.models.analysis_job import AnalysisJob, JobStatus
from pagegrade.features.analysis.schemas.analysis import (
    AnalysisRequest,
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    ProgressStage,
)
from pagegrade.features.analysis.services.orchestration.submission import submit_analysis
from pagegrade.features.analysis.services.store.analysis_store import AnalysisStore
from pagegrade.platform.config import settings
from pagegrade.platform.logger import get_logger
from pagegrade.platform.services.sse_helper import encode_event, progress_channel

logger = get_logger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}

TERMINAL_EVENT_TYPES = ("complete", "error")


def snapshot_events(job: AnalysisJob) -> list:
    """Events that bring a late subscriber up to the job's current state."""
    if job.status == JobStatus.COMPLETED:
        return [CompleteEvent(data=job.model_dump(mode="json", by_alias=True))]
    if job.status == JobStatus.FAILED:
        return [ErrorEvent(error=job.error_message or "Analysis failed")]
    if job.stage:
        return [
            ProgressEvent(
                stage=ProgressStage(job.stage),
                progress=job.progress,
                message="Analysis in progress",
            )
        ]
    return [ProgressEvent(stage=ProgressStage.fetch, progress=0, message="Waiting to start")]


def _heartbeat() -> dict:
    return {
        "event": "heartbeat",
        "data": json.dumps({"timestamp": asyncio.get_event_loop().time()}),
    }


async def analysis_progress_stream(
    job_id: str,
    store: AnalysisStore,
    redis_client: AsyncRedis,
    is_disconnected: Callable[[], Awaitable[bool]],
    timeout: Optional[float] = None,
    heartbeat: Optional[float] = None,
) -> AsyncGenerator[dict, None]:
    """
    Stream progress events for a job.

    This generator:
    1. Subscribes to the job's pub/sub channel
    2. Sends a snapshot of the stored job state
    3. Forwards live events, with heartbeats while idle
    4. Closes on a terminal event, client disconnect or timeout
    """
    timeout = timeout or settings.SSE_STREAM_TIMEOUT_SECONDS
    heartbeat = heartbeat or settings.SSE_HEARTBEAT_SECONDS

    channel = progress_channel(job_id)
    pubsub = redis_client.pubsub()

    try:
        # Subscribe before reading the snapshot so no event falls in between
        await pubsub.subscribe(channel)
        logger.info(f"SSE: Subscribed to {channel}")

        job = await run_in_threadpool(store.get, job_id)
        if job is None:
            yield {"data": encode_event(ErrorEvent(error="Analysis not found"))}
            return

        for event in snapshot_events(job):
            yield {"data": encode_event(event)}
            if event.type in TERMINAL_EVENT_TYPES:
                return

        loop = asyncio.get_event_loop()
        start_time = loop.time()

        while True:
            if await is_disconnected():
                logger.info(f"SSE: Client disconnected for job {job_id}")
                break

            if loop.time() - start_time > timeout:
                logger.info(f"SSE: Connection timeout for job {job_id}")
                yield {
                    "event": "timeout",
                    "data": json.dumps({"message": "Connection timeout"}),
                }
                break

            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=heartbeat)

            if not message or message.get("type") != "message":
                yield _heartbeat()
                continue

            payload = message["data"]
            yield {"data": payload}

            try:
                event_type = json.loads(payload).get("type")
            except ValueError:
                logger.warning(f"SSE: Ignoring malformed event on {channel}")
                continue

            if event_type in TERMINAL_EVENT_TYPES:
                break

    except redis.RedisError as e:
        logger.error(f"SSE: Error streaming for job {job_id}: {e}", exc_info=True)
        yield {"data": encode_event(ErrorEvent(error="Progress stream interrupted"))}
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
        logger.info(f"SSE: Closed connection for job {job_id}")


@router.post("/stream", summary="Queue a URL and stream its progress (SSE)")
async def create_analysis_stream(
    payload: AnalysisRequest,
    request: Request,
    store: AnalysisStore = Depends(get_store),
    enqueue: Callable[[AnalysisJob], bool] = Depends(get_enqueuer),
    redis_client: AsyncRedis = Depends(get_async_redis),
):
    """
    Creates the job and immediately streams its progress.

    **Client Usage (JavaScript):**
    ```javascript
    const response = await fetch('/api/v1/analysis/stream', {
        method: 'POST',
        headers: {'Content-Type': 'application/json'},
        body: JSON.stringify({url: 'https://example.com'}),
    });
    ```
    """
    job = await run_in_threadpool(submit_analysis, payload.url, store, enqueue)
    logger.info(f"SSE: Streaming new job {job.id} for {job.url}")

    return EventSourceResponse(
        analysis_progress_stream(job.id, store, redis_client, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/{job_id}/stream", summary="Stream analysis progress (SSE)")
async def stream_analysis_progress(
    job_id: str,
    request: Request,
    store: AnalysisStore = Depends(get_store),
    redis_client: AsyncRedis = Depends(get_async_redis),
):
    """
    Stream progress for an existing job.

    **Client Usage (JavaScript):**
    ```javascript
    const eventSource = new EventSource('/api/v1/analysis/{job_id}/stream');

    eventSource.onmessage = (e) => {
        const event = JSON.parse(e.data);
        if (event.type === 'complete' || event.type === 'error') eventSource.close();
    };
    ```
    """
    await run_in_threadpool(store.get_or_raise, job_id)
    logger.info(f"SSE: Client connected for job {job_id}")

    return EventSourceResponse(
        analysis_progress_stream(job_id, store, redis_client, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
