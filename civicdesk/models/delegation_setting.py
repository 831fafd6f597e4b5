"""Delegation singleton model."""

from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, func
from civicdesk.db.base import Base

SINGLETON_ID = 1


class DelegationSetting(Base):
    """Global switch letting the staff role approve/reject certificates and blotters.

    Exactly one row (``id = 1``) exists; it is created lazily on first access.
    """
    __tablename__ = "delegation_settings"

    id = Column(Integer, primary_key=True, autoincrement=False, default=SINGLETON_ID)
    staff_can_approve = Column(Boolean, default=False, nullable=False)
    enabled_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    enabled_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def snapshot(self) -> dict:
        return {
            "staff_can_approve": bool(self.staff_can_approve),
            "enabled_by": self.enabled_by,
            "enabled_at": self.enabled_at.isoformat() if self.enabled_at else None,
        }
