"""Current-user resolution: password hashing, JWT tokens and FastAPI dependencies."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Tuple
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import MissingSecretError, get_settings, require_secret
from ..database import get_session
from ..models import User
from ..schemas import RegisterRequest

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)
_passwords = CryptContext(schemes=["bcrypt"], deprecated="auto")


@lru_cache(maxsize=1)
def _signing_key() -> str:
    try:
        return require_secret("JWT_SECRET_KEY")
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc


def hash_password(password: str) -> str:
    return _passwords.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return _passwords.verify(password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash has an unknown format")
        return False


def create_access_token(subject: UUID, *, expires_minutes: Optional[int] = None) -> str:
    """Sign a bearer token for user ``subject``."""

    settings = get_settings()
    issued = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or settings.jwt_expires_minutes)
    claims = {"sub": str(subject), "iat": issued, "exp": issued + lifetime}
    return jwt.encode(claims, _signing_key(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """Return the user id a token was issued for, or raise 401."""

    invalid = HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    try:
        claims = jwt.decode(token, _signing_key(), algorithms=[get_settings().jwt_algorithm])
        return UUID(str(claims["sub"]))
    except (JWTError, KeyError, ValueError) as exc:
        raise invalid from exc


def register_user(db: Session, payload: RegisterRequest) -> Tuple[User, str]:
    """Persist a new user and return the user with an access token."""

    clauses = [User.username == payload.username]
    if payload.email:
        clauses.append(User.email == str(payload.email))
    existing = db.scalar(select(User).where(or_(*clauses)))
    if existing is not None:
        detail = "Username already in use" if existing.username == payload.username else "Email already registered"
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    display_name = payload.display_name.strip() if payload.display_name else None
    user = User(
        username=payload.username,
        email=str(payload.email) if payload.email else None,
        display_name=display_name or None,
        hashed_password=hash_password(payload.password),
    )

    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to register user")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to register user") from exc

    logger.info("Registered user %s", user.id)
    return user, create_access_token(user.id)


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    user = db.scalar(select(User).where(User.username == username))
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user


def _bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    return credentials.credentials


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: Session = Depends(get_session),
) -> User:
    """Viewer for endpoints that need one: 401 without a valid token."""

    token = _bearer_token(credentials)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    user = db.get(User, decode_access_token(token))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: Session = Depends(get_session),
) -> User | None:
    """Viewer for public endpoints. Bad or missing tokens read as anonymous."""

    token = _bearer_token(credentials)
    if token is None:
        return None
    try:
        return db.get(User, decode_access_token(token))
    except HTTPException:
        return None


__all__ = [
    "register_user",
    "authenticate_user",
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "verify_password",
    "get_current_user",
    "get_optional_user",
]
