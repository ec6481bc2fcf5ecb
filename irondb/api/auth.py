"""Email/password authentication endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from irondb.api.dependencies import CurrentPrincipal
from irondb.database import get_db
from irondb.errors import AuthenticationFailedError, BadRequestError
from irondb.schemas.auth import AuthResponse, Principal, UserLogin, UserRegister, UserResponse
from irondb.services.auth import (
    authenticate_user,
    create_access_token,
    create_user,
    get_user_by_email,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Annotated[Session, Depends(get_db)],
):
    """Register an email/password user."""
    if get_user_by_email(db, user_data.email):
        raise BadRequestError("Email already registered")

    try:
        user = create_user(db, user_data.email, user_data.password)
    except IntegrityError as e:
        # A concurrent registration won the unique email constraint
        db.rollback()
        raise BadRequestError("Email already registered") from e
    logger.info(f"Registered user {user.id}")

    return AuthResponse(
        token=create_access_token(user.id, user.email),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: UserLogin,
    db: Annotated[Session, Depends(get_db)],
):
    """Login with email and password."""
    user = authenticate_user(db, credentials.username, credentials.password)
    if not user:
        raise AuthenticationFailedError("Invalid credentials")

    return AuthResponse(
        token=create_access_token(user.id, user.email),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=Principal)
def get_me(principal: CurrentPrincipal):
    """Get the identity carried by the caller's token."""
    return principal
