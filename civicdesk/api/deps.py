"""Request-scoped RBAC service providers and the permission guard dependency."""

from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from civicdesk.core.security import get_optional_user
from civicdesk.db.session import get_db
from civicdesk.models.user import User
from civicdesk.services.access_engine import AccessDecisionEngine, Decision
from civicdesk.services.access_matrix import AccessMatrixReporter
from civicdesk.services.delegation_gate import DelegationGate
from civicdesk.services.override_store import PermissionOverrideStore
from civicdesk.services.permission_catalog import PermissionCatalog, get_catalog


def get_override_store(
    db: Session = Depends(get_db),
    catalog: PermissionCatalog = Depends(get_catalog),
) -> PermissionOverrideStore:
    return PermissionOverrideStore(db, catalog)


def get_delegation_gate(db: Session = Depends(get_db)) -> DelegationGate:
    return DelegationGate(db)


def get_access_engine(
    overrides: PermissionOverrideStore = Depends(get_override_store),
    delegation: DelegationGate = Depends(get_delegation_gate),
) -> AccessDecisionEngine:
    return AccessDecisionEngine(overrides, delegation)


def get_matrix_reporter(
    overrides: PermissionOverrideStore = Depends(get_override_store),
) -> AccessMatrixReporter:
    return AccessMatrixReporter(overrides)


class RequirePermission:
    """Dependency that runs the access decision engine before the handler.

    Returns the authenticated user. A missing user surfaces as 401 and a
    denial as 403 via the exception handlers in ``main``.
    """

    def __init__(self, permission: str):
        self.permission = permission

    async def __call__(
        self,
        user: Optional[User] = Depends(get_optional_user),
        engine: AccessDecisionEngine = Depends(get_access_engine),
    ) -> User:
        engine.ensure(user, self.permission)
        return user


class CheckPermission(RequirePermission):
    """Variant returning the ``Decision`` (for endpoints that report delegation)."""

    async def __call__(
        self,
        user: Optional[User] = Depends(get_optional_user),
        engine: AccessDecisionEngine = Depends(get_access_engine),
    ) -> Decision:
        return engine.ensure(user, self.permission)


# Convenience guards
require_roles_manage = RequirePermission("roles.manage")
require_delegation_manage = RequirePermission("delegation.manage")
require_audit_view = RequirePermission("audit.view")
require_users_manage = RequirePermission("users.manage")
