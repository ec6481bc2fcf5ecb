"""Celery task that runs queued studio jobs."""

import logging
from collections.abc import Callable
from functools import lru_cache
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy import Engine

from irondb.celery_app import app as celery_app
from irondb.config import Settings, get_settings
from irondb.database import create_db_engine
from irondb.models.enums import JobStatus, TaskType
from irondb.services.job_log import record_failed_job
from irondb.tasks.handlers import HANDLERS, InvalidJobError

logger = logging.getLogger(__name__)
settings = get_settings()


@lru_cache
def get_worker_engine() -> Engine:
    """The worker's own pool, separate from the API's."""
    return create_db_engine(settings, pool_size=settings.worker_db_pool_size)


def _log_transition(job_id: str, status: JobStatus) -> None:
    logger.info(f"Job {job_id} -> {status}")


class JobRunner:
    """Dispatches one job to its handler and reports status transitions."""

    def __init__(
        self,
        engine: Engine,
        settings: Settings | None = None,
        on_transition: Callable[[str, JobStatus], None] = _log_transition,
    ):
        self.engine = engine
        self.settings = settings or get_settings()
        self.on_transition = on_transition

    def run(self, job_id: str, task_type: str, payload: Any) -> dict:
        """Run the handler for task_type; handler errors propagate to the caller."""
        self.on_transition(job_id, JobStatus.PROCESSING)
        try:
            handler = HANDLERS[TaskType(task_type)]
        except ValueError as e:
            raise InvalidJobError(f"Unknown task type: {task_type}") from e

        result = handler(self.engine, payload, self.settings)
        self.on_transition(job_id, JobStatus.SUCCESS)
        return result


def _mark_failed(job_id: str, task_type: str, payload: Any, error: Exception) -> None:
    logger.error(f"Job {job_id} ({task_type}) failed: {error}")
    _log_transition(job_id, JobStatus.FAILED)
    try:
        record_failed_job(job_id, task_type, payload, str(error))
    except RedisError as e:
        logger.error(f"Could not record failed job {job_id}: {e}")


@celery_app.task(
    bind=True,
    name="irondb.process_job",
    max_retries=settings.job_max_retries,
    ignore_result=True,
    store_errors_even_if_ignored=True,
)
def process_job(self, task_type: str, payload: Any) -> dict:
    """Run a queued job.

    Args:
        task_type: One of the TaskType values
        payload: Handler-specific job data

    Returns:
        dict summary from the handler
    """
    job_id = self.request.id
    logger.info(f"Processing job {job_id}: {task_type}")
    runner = JobRunner(get_worker_engine())

    try:
        return runner.run(job_id, task_type, payload)

    except InvalidJobError as e:
        _mark_failed(job_id, task_type, payload, e)
        raise

    except Exception as e:
        logger.warning(f"Job {job_id} attempt {self.request.retries + 1} failed: {e}")
        if self.request.retries < self.max_retries:
            raise self.retry(exc=e, countdown=settings.job_retry_countdown_seconds) from e

        _mark_failed(job_id, task_type, payload, e)
        raise
