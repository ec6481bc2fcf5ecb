"""Database configuration and session management."""

import logging
from collections.abc import Generator
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from irondb.config import Settings, get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def create_db_engine(settings: Settings, pool_size: int | None = None) -> Engine:
    """Build an engine with the configured pool and statement timeout.

    The API and the job worker each call this so they hold separate pools.
    """
    connect_args: dict[str, Any] = {}
    if settings.database_url.startswith("postgresql") and settings.sql_statement_timeout_ms > 0:
        connect_args["options"] = f"-c statement_timeout={settings.sql_statement_timeout_ms}"

    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=pool_size or settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        connect_args=connect_args,
    )
    logger.info(f"Created database engine pool_size={pool_size or settings.db_pool_size}")
    return engine


engine = create_db_engine(settings)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_engine() -> Engine:
    """Dependency that provides the API connection pool."""
    return engine


def init_db() -> None:
    """Initialize the database by creating all tables."""
    # Import all models here so they are registered with Base.metadata
    from irondb import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
