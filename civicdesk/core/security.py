"""Password hashing, JWT tokens and current-user resolution."""

import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from civicdesk.core.config import settings
from civicdesk.core.exceptions import unauthorized
from civicdesk.db.session import get_db
from civicdesk.models.user import User

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise unauthorized("Invalid or expired token")


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolve the bearer token to an active ``User``; None when no token is sent.

    The role is always read from the database row, never from the token, so
    a role change applies to already-issued tokens.
    """
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access" or payload.get("sub") is None:
        raise unauthorized("Invalid token payload")

    user = db.get(User, int(payload["sub"]))
    if user is None or not user.is_active:
        raise unauthorized("Account not found or deactivated")
    return user


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Like ``get_optional_user`` but requires authentication."""
    if user is None:
        raise unauthorized()
    return user
