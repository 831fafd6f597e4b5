"""Seed the super-admin user from env vars."""

from typing import Optional

from sqlalchemy.orm import Session

from civicdesk.models.user import User
from civicdesk.core.roles import SUPER_ADMIN
from civicdesk.core.security import hash_password
from civicdesk.core.config import settings
from civicdesk.db.session import atomic


def seed_super_admin(db: Session) -> Optional[User]:
    """Create the super-admin user if not already present; returns None when it exists."""
    existing = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).first()
    if existing:
        return None

    admin = User(
        email=settings.SUPER_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        full_name="Super Admin",
        is_active=True,
        role=SUPER_ADMIN,
    )
    with atomic(db):
        db.add(admin)
    return admin
