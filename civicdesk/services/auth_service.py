"""Auth service — login and user administration."""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from civicdesk.models.user import User
from civicdesk.core.roles import canonical_role
from civicdesk.core.security import hash_password, verify_password, create_access_token
from civicdesk.core.exceptions import (
    AuthenticationError, ResourceNotFoundError, ValidationError,
)
from civicdesk.db.session import atomic
from civicdesk.services.audit_service import audit_trail
from civicdesk.services.permission_catalog import PermissionCatalog

logger = logging.getLogger("civicdesk.auth")


def _user_snapshot(user: User) -> Dict[str, Any]:
    return {"full_name": user.full_name, "role": user.role, "is_active": bool(user.is_active)}


class AuthService:
    """Handles authentication and user management."""

    @staticmethod
    def authenticate(
        db: Session,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Authenticate user, audit the login and return a JWT access token.

        Raises:
            AuthenticationError: If credentials are invalid.
        """
        user = db.query(User).filter(User.email == email).first()
        if not user or not verify_password(password, user.hashed_password):
            logger.info("Failed login for %s", email)
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        role = canonical_role(user.role)
        access_token = create_access_token({"sub": str(user.id), "email": user.email, "role": role})

        with atomic(db):
            user.last_login_at = datetime.now(timezone.utc).replace(tzinfo=None)
            audit_trail.record(
                db, user, "user.login", "user", user.id,
                ip_address=ip_address, user_agent=user_agent,
            )

        return {
            "access_token": access_token,
            "token_type": "bearer",
            "user": {
                "id": user.id,
                "email": user.email,
                "full_name": user.full_name,
                "role": role,
            },
        }

    @staticmethod
    def create_user(
        db: Session,
        catalog: PermissionCatalog,
        email: str,
        password: str,
        full_name: str,
        role: str = "staff_user",
    ) -> User:
        """Create a new user; the role is stored in its canonical form."""
        if db.query(User).filter(User.email == email).first():
            raise ValidationError(f"User with email {email} already exists")

        role = canonical_role(role)
        if not catalog.has_role(role):
            raise ResourceNotFoundError(f"Role '{role}' not found")

        user = User(
            email=email,
            hashed_password=hash_password(password),
            full_name=full_name,
            role=role,
            is_active=True,
        )
        with atomic(db):
            db.add(user)
        db.refresh(user)
        return user

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        """Get a user by id."""
        user = db.get(User, user_id)
        if not user:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def list_users(db: Session, page: int = 1, page_size: int = 20):
        """List all users with pagination."""
        total = db.query(User).count()
        users = (
            db.query(User)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"users": users, "total": total, "page": page}

    @staticmethod
    def update_user(
        db: Session,
        catalog: PermissionCatalog,
        user_id: int,
        actor: User,
        full_name: Optional[str] = None,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> User:
        """Update name, role or status; the change and its audit entry commit together."""
        user = AuthService.get_user(db, user_id)
        if role is not None:
            role = canonical_role(role)
            if not catalog.has_role(role):
                raise ResourceNotFoundError(f"Role '{role}' not found")

        before = _user_snapshot(user)
        with atomic(db):
            if full_name:
                user.full_name = full_name
            if role is not None:
                user.role = role
            if is_active is not None:
                user.is_active = is_active
            db.flush()
            audit_trail.record(
                db, actor, "user.update", "user", user.id,
                before=before, after=_user_snapshot(user),
                ip_address=ip_address, user_agent=user_agent,
            )
        return user


auth_service = AuthService()
