"""Google sign-in endpoints."""

import logging
from typing import Annotated

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from irondb.config import get_settings
from irondb.database import get_db
from irondb.models.enums import AuthProvider
from irondb.services.auth import create_access_token, upsert_user
from irondb.services.oauth import build_frontend_redirect, oauth

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/auth/google", tags=["auth"])


def _require_google() -> None:
    if not settings.google_oauth_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google sign-in is not configured",
        )


@router.get("")
async def google_login(request: Request):
    """Redirect the browser to Google's consent screen."""
    _require_google()
    redirect_uri = settings.google_callback_url or str(request.url_for("google_callback"))
    return await oauth.google.authorize_redirect(request, redirect_uri)


@router.get("/callback", name="google_callback")
async def google_callback(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    """Complete sign-in and hand the token to the frontend."""
    _require_google()
    try:
        token = await oauth.google.authorize_access_token(request)
    except OAuthError as e:
        logger.warning(f"Google sign-in failed: {e.error}")
        return RedirectResponse(settings.oauth_failure_redirect)

    user_info = token.get("userinfo") or {}
    email = user_info.get("email")
    if not email:
        logger.warning("Google sign-in returned no email")
        return RedirectResponse(settings.oauth_failure_redirect)

    user = upsert_user(db, email, AuthProvider.GOOGLE, google_id=user_info.get("sub"))
    access_token = create_access_token(user.id, user.email)
    return RedirectResponse(build_frontend_redirect(access_token, user.email))
