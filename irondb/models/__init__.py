"""SQLAlchemy models."""

from irondb.models.enums import AuthProvider, JobStatus, TaskType
from irondb.models.user import User

__all__ = [
    "User",
    "AuthProvider",
    "TaskType",
    "JobStatus",
]
