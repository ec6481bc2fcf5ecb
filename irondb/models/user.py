"""User model."""

from sqlalchemy import Column, DateTime, Integer, String, func

from irondb.database import Base


class User(Base):
    """Studio operator identity, keyed on email."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    provider = Column(String(32), nullable=False)
    google_id = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=True)
    last_sign_in = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    # Also bumped explicitly by the sign-in upsert, which bypasses onupdate
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
