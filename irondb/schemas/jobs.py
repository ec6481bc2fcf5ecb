"""Job queue schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EnqueueRequest(BaseModel):
    """Task type plus opaque payload for the worker."""

    model_config = ConfigDict(populate_by_name=True)

    task_type: str | None = Field(default=None, alias="taskType")
    payload: Any = None


class EnqueueResponse(BaseModel):
    """Acknowledgement that the job was accepted by the queue (not that it ran)."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "queued"
    message: str = "Task sent to worker"
    job_id: str = Field(alias="jobId")


class FailedJob(BaseModel):
    """A job that exhausted its retries."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    task_type: str = Field(alias="taskType")
    payload: Any = None
    error: str
    failed_at: str = Field(alias="failedAt")


class FailedJobListResponse(BaseModel):
    jobs: list[FailedJob]
