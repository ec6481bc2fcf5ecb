"""Error types surfaced to API callers.

Each error carries its HTTP status and the JSON key the studio UI reads the
message from (``error`` for gate and validation failures, ``message`` for
upstream and sign-in failures).
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class StudioError(Exception):
    """Base class for errors rendered as JSON responses."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    body_key: str = "message"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthMissingError(StudioError):
    """No bearer token was presented."""

    status_code = status.HTTP_401_UNAUTHORIZED
    body_key = "error"

    def __init__(self, message: str = "No token provided"):
        super().__init__(message)


class AuthInvalidError(StudioError):
    """A token was presented but is not trusted."""

    status_code = status.HTTP_403_FORBIDDEN
    body_key = "error"

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class AuthenticationFailedError(StudioError):
    """Sign-in could not complete."""

    status_code = status.HTTP_401_UNAUTHORIZED


class BadRequestError(StudioError):
    status_code = status.HTTP_400_BAD_REQUEST
    body_key = "error"


class UpstreamError(StudioError):
    """Database or broker failure, message passed through verbatim."""


async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthMissingError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={exc.body_key: exc.message},
        headers=headers,
    )
