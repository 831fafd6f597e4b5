"""Per-role permission overrides with catalog fallback."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from civicdesk.core.exceptions import InvalidPermissionError, ResourceNotFoundError
from civicdesk.db.session import atomic
from civicdesk.models.role_permission import RolePermission
from civicdesk.services.audit_service import AuditTrail, audit_trail
from civicdesk.services.permission_catalog import PermissionCatalog

logger = logging.getLogger("civicdesk.rbac")

TARGET_TYPE = "role_permission"


class PermissionOverrideStore:
    """Effective permission sets per role.

    No in-process cache: every read goes to the
    database so an override is visible to the very next authorization check.
    Concurrent writes to the same role are last-write-wins.
    """

    def __init__(self, db: Session, catalog: PermissionCatalog, audit: AuditTrail = audit_trail):
        self.db = db
        self.catalog = catalog
        self.audit = audit

    def _row(self, role: str) -> Optional[RolePermission]:
        return self.db.query(RolePermission).filter(RolePermission.role == role).first()

    def effective_permissions(self, role: str) -> Tuple[str, ...]:
        """Stored override when present, otherwise the catalog defaults (empty for unknown roles)."""
        row = self._row(role)
        if row is not None:
            return tuple(row.permissions)
        return self.catalog.defaults_for(role)

    def has_override(self, role: str) -> bool:
        return self._row(role) is not None

    def list_overrides(self) -> Dict[str, List[str]]:
        rows = self.db.query(RolePermission).filter(RolePermission.role.in_(self.catalog.roles())).all()
        return {row.role: row.permissions for row in rows}

    def _require_role(self, role: str) -> None:
        if not self.catalog.has_role(role):
            raise ResourceNotFoundError(f"Role '{role}' not found")

    def _pin(self, role: str, permissions: Sequence[str], actor: Optional[Any]) -> Tuple[RolePermission, List[str]]:
        """Create or replace the override row; returns the row and the previous effective set."""
        row = self._row(role)
        if row is None:
            before = list(self.catalog.defaults_for(role))
            row = RolePermission(role=role)
            self.db.add(row)
        else:
            before = row.permissions
        row.permissions = permissions
        row.updated_by = getattr(actor, "id", None)
        self.db.flush()
        return row, before

    def set_override(
        self,
        role: str,
        permissions: Sequence[str],
        actor: Optional[Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> List[str]:
        """Replace the permission set of ``role``.

        Raises:
            ResourceNotFoundError: role is not in the catalog.
            InvalidPermissionError: any token is outside the catalog universe;
                nothing is written.
        """
        self._require_role(role)
        submitted = list(dict.fromkeys(permissions))
        invalid = [p for p in submitted if not self.catalog.is_known_permission(p)]
        if invalid:
            logger.info("Rejected override for %s: %d unknown permissions", role, len(invalid))
            raise InvalidPermissionError(invalid)

        with atomic(self.db):
            row, before = self._pin(role, submitted, actor)
            self.audit.record(
                self.db, actor, "role.permissions.update", TARGET_TYPE, row.id,
                before={"role": role, "permissions": before},
                after={"role": role, "permissions": submitted},
                ip_address=ip_address, user_agent=user_agent,
            )

        logger.info("Permissions for %s updated by user %s", role, getattr(actor, "id", None))
        return submitted

    def reset_override(
        self,
        role: str,
        actor: Optional[Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> List[str]:
        """Pin ``role`` to the current catalog defaults.

        The row is kept, so later catalog changes do not propagate until the
        next reset.
        """
        self._require_role(role)
        defaults = list(self.catalog.defaults_for(role))

        with atomic(self.db):
            row, before = self._pin(role, defaults, actor)
            self.audit.record(
                self.db, actor, "role.permissions.reset", TARGET_TYPE, row.id,
                before={"role": role, "permissions": before},
                after={"role": role, "permissions": defaults},
                ip_address=ip_address, user_agent=user_agent,
            )

        logger.info("Permissions for %s reset to defaults by user %s", role, getattr(actor, "id", None))
        return defaults

    def reset_all(
        self,
        actor: Optional[Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> List[str]:
        """Reset every catalog role in one transaction with a single summary audit entry."""
        roles = list(self.catalog.roles())

        with atomic(self.db):
            for role in roles:
                self._pin(role, list(self.catalog.defaults_for(role)), actor)
            self.audit.record(
                self.db, actor, "role.permissions.reset_all", TARGET_TYPE, 0,
                before=None,
                after={"roles": roles},
                ip_address=ip_address, user_agent=user_agent,
            )

        logger.info("All role permissions reset to defaults by user %s", getattr(actor, "id", None))
        return roles
