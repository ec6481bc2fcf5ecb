"""Pydantic schemas for API requests and responses."""

from irondb.schemas.auth import AuthResponse, Principal, UserLogin, UserRegister, UserResponse
from irondb.schemas.jobs import EnqueueRequest, EnqueueResponse, FailedJob, FailedJobListResponse
from irondb.schemas.query import (
    FieldDescription,
    FunctionInfo,
    FunctionListResponse,
    QueryRequest,
    QueryResult,
    TableInfo,
    TableListResponse,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "AuthResponse",
    "Principal",
    "QueryRequest",
    "QueryResult",
    "FieldDescription",
    "TableInfo",
    "TableListResponse",
    "FunctionInfo",
    "FunctionListResponse",
    "EnqueueRequest",
    "EnqueueResponse",
    "FailedJob",
    "FailedJobListResponse",
]
