"""Models package — import all models so metadata.create_all can discover them."""

from civicdesk.models.user import User
from civicdesk.models.role_permission import RolePermission
from civicdesk.models.delegation_setting import DelegationSetting
from civicdesk.models.audit_log import AuditLog

__all__ = [
    "User", "RolePermission", "DelegationSetting", "AuditLog",
]
