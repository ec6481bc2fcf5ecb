"""Bounded record of jobs that exhausted their retries.

Stored as a Redis list, newest first, trimmed to
``job_failure_retention_count`` entries.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

import redis

from irondb.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

_redis: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Get the shared synchronous Redis client."""
    global _redis
    if _redis is None:
        _redis = redis.from_url(settings.redis_url)
    return _redis


def failed_jobs_key() -> str:
    return f"{settings.job_queue_name}:failed"


def record_failed_job(job_id: str, task_type: str, payload: Any, error: str) -> None:
    """Push a failure record and trim the list to the retention count."""
    entry = {
        "jobId": job_id,
        "taskType": task_type,
        "payload": payload,
        "error": error,
        "failedAt": datetime.now(UTC).isoformat(),
    }
    client = get_redis()
    pipe = client.pipeline()
    pipe.lpush(failed_jobs_key(), json.dumps(entry, default=str))
    pipe.ltrim(failed_jobs_key(), 0, settings.job_failure_retention_count - 1)
    pipe.execute()
    logger.info(f"Recorded failed job {job_id} ({task_type})")


def list_failed_jobs(limit: int = 50) -> list[dict]:
    """Most recent failure records, newest first."""
    raw = get_redis().lrange(failed_jobs_key(), 0, limit - 1)
    return [json.loads(item) for item in raw]
