"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from irondb.api import auth, jobs, oauth, query
from irondb.config import get_settings
from irondb.errors import StudioError, studio_error_handler
from irondb.middleware import RateLimitMiddleware, SecurityHeadersMiddleware

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    logger.info(f"IronDB API starting ({settings.environment})")
    yield
    from irondb.database import engine

    engine.dispose()


app = FastAPI(
    title="IronDB Studio API",
    description="Admin gateway for browsing Postgres, running SQL and queueing jobs",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(StudioError, studio_error_handler)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    RateLimitMiddleware,
    max_requests=settings.rate_limit_requests,
    window_seconds=settings.rate_limit_window_seconds,
)
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret, https_only=settings.is_production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(oauth.router)
app.include_router(auth.router)
app.include_router(query.router)
app.include_router(jobs.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
