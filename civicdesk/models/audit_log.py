"""Audit log model — append-only."""

from sqlalchemy import Column, Integer, String, Text, DateTime, func
from civicdesk.db.base import Base


class AuditLog(Base):
    """Immutable audit trail for privileged mutations.

    This table is APPEND-ONLY: no UPDATE or DELETE operations should ever
    be performed on it (enforced at application level).

    ``actor_id`` and ``target_id`` are plain lookups, not foreign keys, so the
    record survives deletion of the user or the target. Actor name and email
    are snapshotted at write time for the same reason.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(Integer, nullable=True, index=True)
    actor_name = Column(String(255), nullable=True)
    actor_email = Column(String(255), nullable=True)
    action = Column(String(100), nullable=False, index=True)  # e.g. "role.permissions.update"
    target_type = Column(String(50), nullable=False, index=True)  # role_permission, delegation_setting, user
    target_id = Column(String(100), nullable=True)
    before_json = Column(Text, nullable=True)
    after_json = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
