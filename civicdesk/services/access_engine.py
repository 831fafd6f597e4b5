"""Access decision engine — allow/deny for (user, permission)."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from civicdesk.core.exceptions import AuthenticationError, PermissionDeniedError
from civicdesk.core.roles import STAFF_USER, canonical_role
from civicdesk.services.delegation_gate import DelegationGate
from civicdesk.services.override_store import PermissionOverrideStore

logger = logging.getLogger("civicdesk.rbac")

NO_USER = "no_user"
PERMISSION_DENIED = "permission_denied"

# The only capabilities the delegation switch can grant, and only to this role.
DELEGABLE_PERMISSIONS = frozenset({"certificates.approve", "blotter.approve"})
DELEGATE_ROLE = STAFF_USER


@dataclass(frozen=True)
class Decision:
    allowed: bool
    permission: str
    role: Optional[str] = None
    reason: Optional[str] = None
    delegated: bool = False

    def __bool__(self) -> bool:
        return self.allowed


class AccessDecisionEngine:
    """Decides whether a user holds a permission.

    Order: effective role permissions (override, else catalog default), then
    the staff delegation escape hatch. Side-effect free: denials are logged
    but never audited here.
    """

    def __init__(
        self,
        overrides: PermissionOverrideStore,
        delegation: DelegationGate,
        role_resolver: Callable[[Any], str] = canonical_role,
    ):
        self.overrides = overrides
        self.delegation = delegation
        self.role_resolver = role_resolver

    def role_of(self, user) -> str:
        return self.role_resolver(getattr(user, "role", None))

    def permissions_for(self, user) -> Tuple[str, ...]:
        if user is None:
            return ()
        role = self.role_of(user)
        granted = self.overrides.effective_permissions(role)
        if not granted and not self.overrides.catalog.has_role(role):
            logger.warning("User %s has unknown role %r; treating as no permissions", getattr(user, "id", None), role)
        return granted

    def authorize(self, user, permission: str) -> Decision:
        if user is None:
            return Decision(False, permission, reason=NO_USER)

        role = self.role_of(user)
        if permission in self.permissions_for(user):
            return Decision(True, permission, role=role)

        if (
            permission in DELEGABLE_PERMISSIONS
            and role == DELEGATE_ROLE
            and self.delegation.is_enabled()
        ):
            logger.info("Delegated %s to user %s", permission, getattr(user, "id", None))
            return Decision(True, permission, role=role, delegated=True)

        logger.info("Denied %s to user %s (role %s)", permission, getattr(user, "id", None), role)
        return Decision(False, permission, role=role, reason=PERMISSION_DENIED)

    def ensure(self, user, permission: str) -> Decision:
        """Like ``authorize`` but raises on deny.

        Raises:
            AuthenticationError: no user.
            PermissionDeniedError: user lacks the permission.
        """
        decision = self.authorize(user, permission)
        if decision.allowed:
            return decision
        if decision.reason == NO_USER:
            raise AuthenticationError("Not authenticated")
        raise PermissionDeniedError(permission)
