"""Per-role permission override model."""

import json

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from civicdesk.db.base import Base


class RolePermission(Base):
    """Stored permission set for one role, superseding the catalog default.

    Absence of a row means "use the catalog default". A reset pins the row to
    the defaults of the moment instead of deleting it.
    """
    __tablename__ = "role_permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role = Column(String(50), unique=True, nullable=False, index=True)
    permissions_json = Column(Text, nullable=False, default="[]")  # JSON list of permission strings
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def permissions(self) -> list[str]:
        return list(json.loads(self.permissions_json or "[]"))

    @permissions.setter
    def permissions(self, value) -> None:
        self.permissions_json = json.dumps(list(value))
