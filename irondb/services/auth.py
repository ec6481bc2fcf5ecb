"""Authentication service for JWT, password handling and user upserts."""

import logging
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from irondb.config import get_settings
from irondb.errors import AuthenticationFailedError
from irondb.models.enums import AuthProvider
from irondb.models.user import User

logger = logging.getLogger(__name__)
settings = get_settings()

AUTHENTICATED_ROLE = "authenticated"

# Password hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_access_token(user_id: int, email: str, role: str = AUTHENTICATED_ROLE) -> str:
    """Create a signed, time-limited JWT for a user."""
    now = datetime.now(UTC)
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expiration_minutes),
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT token.

    Returns None when the signature does not verify or the token has expired.
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def upsert_user(
    db: Session,
    email: str,
    provider: AuthProvider,
    google_id: str | None = None,
) -> User:
    """Insert a user on first sign-in, otherwise touch last_sign_in.

    Runs as a single INSERT ... ON CONFLICT statement so a failure leaves no
    partial state behind.
    """
    dialect = postgresql if db.get_bind().dialect.name == "postgresql" else sqlite
    stmt = (
        dialect.insert(User)
        .values(
            email=email,
            provider=str(provider),
            google_id=google_id,
            last_sign_in=func.now(),
        )
        .on_conflict_do_update(
            index_elements=[User.email],
            set_={"last_sign_in": func.now(), "updated_at": func.now()},
        )
        .returning(User.id)
    )
    try:
        user_id = db.execute(stmt).scalar_one()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"User upsert failed for {email}: {e}")
        raise AuthenticationFailedError("Authentication failed") from e

    user = db.get(User, user_id, populate_existing=True)
    logger.info(f"User {user_id} signed in via {provider}")
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email."""
    return db.query(User).filter(User.email == email).first()


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """Authenticate an email-provider user and record the sign-in."""
    user = get_user_by_email(db, email)
    if not user or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    user.last_sign_in = datetime.now(UTC)
    db.commit()
    db.refresh(user)
    return user


def create_user(db: Session, email: str, password: str) -> User:
    """Create a new email-provider user."""
    user = User(
        email=email,
        provider=str(AuthProvider.EMAIL),
        password_hash=get_password_hash(password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
