"""Google OAuth client registration."""

from urllib.parse import urlencode

from authlib.integrations.starlette_client import OAuth

from irondb.config import get_settings

settings = get_settings()

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"

oauth = OAuth()
oauth.register(
    name="google",
    client_id=settings.google_client_id,
    client_secret=settings.google_client_secret,
    server_metadata_url=GOOGLE_METADATA_URL,
    client_kwargs={"scope": "openid email profile"},
)


def build_frontend_redirect(token: str, email: str) -> str:
    """URL the browser lands on after a successful Google sign-in."""
    query = urlencode({"token": token, "user": email})
    return f"{settings.frontend_url or '/'}?{query}"
