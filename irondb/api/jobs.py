"""Background job endpoints."""

import logging

from fastapi import APIRouter, Query
from kombu.exceptions import KombuError
from redis.exceptions import RedisError

from irondb.api.dependencies import CurrentPrincipal
from irondb.config import get_settings
from irondb.errors import BadRequestError, UpstreamError
from irondb.models.enums import TaskType
from irondb.schemas.jobs import EnqueueRequest, EnqueueResponse, FailedJob, FailedJobListResponse
from irondb.services.job_log import list_failed_jobs
from irondb.tasks.jobs import process_job

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api", tags=["jobs"])


@router.post("/enqueue", response_model=EnqueueResponse)
def enqueue_job(job: EnqueueRequest, principal: CurrentPrincipal):
    """Queue a job for the worker. "queued" means accepted, not finished."""
    if job.task_type not in set(TaskType):
        raise BadRequestError(f"Unknown task type: {job.task_type}")

    try:
        result = process_job.apply_async(
            args=[job.task_type, job.payload],
            queue=settings.job_queue_name,
        )
    except (KombuError, RedisError) as e:
        logger.error(f"Failed to enqueue {job.task_type}: {e}")
        raise UpstreamError(str(e)) from e

    logger.info(f"User {principal.sub} queued job {result.id} ({job.task_type})")
    return EnqueueResponse(job_id=result.id)


@router.get("/jobs/failed", response_model=FailedJobListResponse)
def get_failed_jobs(
    principal: CurrentPrincipal,
    limit: int = Query(default=50, ge=1, le=500),
):
    """Most recent jobs that exhausted their retries."""
    try:
        records = list_failed_jobs(limit)
    except RedisError as e:
        raise UpstreamError(str(e)) from e
    return FailedJobListResponse(jobs=[FailedJob.model_validate(r) for r in records])
