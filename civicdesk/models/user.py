"""User model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from civicdesk.db.base import Base


class User(Base):
    """Portal user.

    ``role`` holds the raw stored value, which may be a historical alias
    (e.g. ``captain``); resolve it with ``canonical_role`` before use.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default="staff_user", index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
