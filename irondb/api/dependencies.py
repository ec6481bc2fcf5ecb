"""FastAPI dependencies for authentication and database access."""

import logging
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy import Engine

from irondb.config import get_settings
from irondb.database import get_engine
from irondb.errors import AuthInvalidError, AuthMissingError
from irondb.schemas.auth import Principal
from irondb.services.auth import decode_access_token
from irondb.services.sql_gateway import SqlGateway

logger = logging.getLogger(__name__)
settings = get_settings()


def get_current_principal(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Verify the bearer token and attach its claims to the request.

    A missing header is a 401; any token that is presented but fails
    verification, or whose role is not allowed, is a 403.
    """
    if not authorization:
        raise AuthMissingError()

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthInvalidError()

    payload = decode_access_token(token.strip())
    if payload is None or payload.get("sub") is None:
        raise AuthInvalidError()

    role = payload.get("role")
    if role not in settings.allowed_roles:
        logger.warning(f"Rejected token for sub={payload['sub']} with role {role!r}")
        raise AuthInvalidError("Insufficient role")

    principal = Principal(sub=str(payload["sub"]), email=payload.get("email"), role=role)
    request.state.principal = principal
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_sql_gateway(engine: Annotated[Engine, Depends(get_engine)]) -> SqlGateway:
    """Get SQL gateway bound to the API connection pool."""
    return SqlGateway(engine)
