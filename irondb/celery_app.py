"""Celery application configuration."""

from celery import Celery

from irondb.config import get_settings

settings = get_settings()

app = Celery(
    "irondb",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["irondb.tasks.jobs"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_default_queue=settings.job_queue_name,
    # Redelivered if the worker dies mid-job
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.worker_concurrency,
)
