"""Enums for model fields and job dispatch."""

from enum import StrEnum


class AuthProvider(StrEnum):
    """How a user signed in."""

    GOOGLE = "google"
    EMAIL = "email"


class TaskType(StrEnum):
    """Background job types the worker knows how to run."""

    BULK_INSERT = "bulk_insert"
    RPC_TRIGGER = "rpc_trigger"


class JobStatus(StrEnum):
    """Lifecycle of a queued job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
