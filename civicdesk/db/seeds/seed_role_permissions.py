"""Pin role permission overrides to the catalog defaults."""

from sqlalchemy.orm import Session

from civicdesk.db.session import atomic
from civicdesk.models.role_permission import RolePermission
from civicdesk.models.user import User
from civicdesk.services.permission_catalog import PermissionCatalog


def seed_role_permissions(db: Session, catalog: PermissionCatalog) -> int:
    """Create or refresh one override row per catalog role.

    Rows are attributed to the first technical administrator, else the first
    super admin. Seeding is not audited; it runs before anyone can log in.
    """
    updated_by = (
        db.query(User.id).filter(User.role == "technical_administrator").order_by(User.id).scalar()
        or db.query(User.id).filter(User.role == "super_admin").order_by(User.id).scalar()
    )

    with atomic(db):
        for role in catalog.roles():
            row = db.query(RolePermission).filter(RolePermission.role == role).first()
            if row is None:
                row = RolePermission(role=role)
                db.add(row)
            row.permissions = catalog.defaults_for(role)
            row.updated_by = updated_by

    return len(catalog.roles())
