"""Admin API router — role permissions, access matrix, delegation, audit logs, users."""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from civicdesk.api.deps import (
    get_delegation_gate, get_matrix_reporter, get_override_store,
    require_audit_view, require_delegation_manage, require_roles_manage, require_users_manage,
)
from civicdesk.core.config import settings
from civicdesk.db.session import get_db
from civicdesk.models.user import User
from civicdesk.schemas.schemas import (
    AccessMatrixOut, AuditLogPage, DelegationOut, MessageResponse,
    RolePermissionsIndex, RolePermissionsOut, RolePermissionsUpdate,
    UserOut, UserUpdateRequest,
)
from civicdesk.services.access_matrix import AccessMatrixReporter
from civicdesk.services.audit_service import audit_trail, client_info
from civicdesk.services.auth_service import auth_service
from civicdesk.services.delegation_gate import DelegationGate
from civicdesk.services.override_store import PermissionOverrideStore

router = APIRouter(prefix="/admin", tags=["admin"])


def _csv_response(content: str, prefix: str) -> Response:
    filename = f"{prefix}-{datetime.now().strftime('%Y%m%d-%H%M%S')}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---- Role permissions ----

@router.get("/role-permissions", response_model=RolePermissionsIndex)
async def list_role_permissions(
    role: Optional[str] = Query(None),
    store: PermissionOverrideStore = Depends(get_override_store),
    actor: User = Depends(require_roles_manage),
):
    """Effective and default permissions for every role."""
    catalog = store.catalog
    roles = list(catalog.roles())
    stored = store.list_overrides()
    defaults = {r: list(catalog.defaults_for(r)) for r in roles}

    return RolePermissionsIndex(
        roles=roles,
        all_permissions=list(catalog.all_permissions()),
        role_permissions={r: stored.get(r, defaults[r]) for r in roles},
        default_permissions=defaults,
        selected_role=role if role in roles else (roles[0] if roles else None),
        catalog_version=catalog.version,
    )


@router.put("/role-permissions/{role}", response_model=RolePermissionsOut)
async def update_role_permissions(
    role: str,
    body: RolePermissionsUpdate,
    request: Request,
    store: PermissionOverrideStore = Depends(get_override_store),
    actor: User = Depends(require_roles_manage),
):
    """Replace a role's permission set."""
    permissions = store.set_override(role, body.permissions, actor, **client_info(request))
    return RolePermissionsOut(role=role, permissions=permissions)


@router.post("/role-permissions/reset-all", response_model=MessageResponse)
async def reset_all_role_permissions(
    request: Request,
    store: PermissionOverrideStore = Depends(get_override_store),
    actor: User = Depends(require_roles_manage),
):
    """Reset every role to its catalog defaults."""
    roles = store.reset_all(actor, **client_info(request))
    return MessageResponse(message="All role permissions reset to defaults.", detail={"roles": roles})


@router.post("/role-permissions/{role}/reset", response_model=RolePermissionsOut)
async def reset_role_permissions(
    role: str,
    request: Request,
    store: PermissionOverrideStore = Depends(get_override_store),
    actor: User = Depends(require_roles_manage),
):
    """Reset one role to its catalog defaults."""
    permissions = store.reset_override(role, actor, **client_info(request))
    return RolePermissionsOut(role=role, permissions=permissions)


# ---- Access matrix ----

@router.get("/access-matrix", response_model=AccessMatrixOut)
async def access_matrix(
    reporter: AccessMatrixReporter = Depends(get_matrix_reporter),
    actor: User = Depends(require_roles_manage),
):
    """Default vs effective permissions per role."""
    return AccessMatrixOut(
        all_permissions=list(reporter.catalog.all_permissions()),
        matrix=reporter.build_matrix(),
    )


@router.get("/access-matrix/export")
async def export_access_matrix(
    reporter: AccessMatrixReporter = Depends(get_matrix_reporter),
    actor: User = Depends(require_roles_manage),
):
    """Module reachability per role as CSV."""
    return _csv_response(reporter.export_csv(), "access-matrix")


# ---- Delegation ----

@router.get("/delegation", response_model=DelegationOut)
async def get_delegation(
    gate: DelegationGate = Depends(get_delegation_gate),
    actor: User = Depends(require_delegation_manage),
):
    """Current delegation state."""
    return gate.current()


@router.patch("/delegation/toggle", response_model=MessageResponse)
async def toggle_delegation(
    request: Request,
    gate: DelegationGate = Depends(get_delegation_gate),
    actor: User = Depends(require_delegation_manage),
):
    """Flip staff approve/reject delegation."""
    enabled = gate.toggle(actor, **client_info(request))
    message = (
        "Delegation enabled: staff can temporarily approve/reject."
        if enabled
        else "Delegation disabled: only designated approvers can approve/reject."
    )
    return MessageResponse(message=message, detail={"staff_can_approve": enabled})


# ---- Audit logs ----

@router.get("/audit", response_model=AuditLogPage)
async def get_audit_logs(
    user: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    module: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(15, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: User = Depends(require_audit_view),
):
    """Query audit logs, newest first; snapshots are masked."""
    result = audit_trail.query_logs(db, user, action, module, date_from, date_to, page, page_size)
    return AuditLogPage(
        logs=[audit_trail.present(log) for log in result["logs"]],
        total=result["total"],
        page=result["page"],
        page_size=result["page_size"],
        available_actions=audit_trail.available_actions(db),
    )


@router.get("/audit/export")
async def export_audit_logs(
    user: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    module: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    actor: User = Depends(require_audit_view),
):
    """Filtered audit logs as CSV."""
    content = audit_trail.export_csv(
        db, limit=settings.AUDIT_EXPORT_LIMIT,
        user=user, action=action, module=module, date_from=date_from, date_to=date_to,
    )
    return _csv_response(content, "audit-logs")


# ---- Users ----

@router.get("/users")
async def admin_list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: User = Depends(require_users_manage),
):
    """List all users."""
    result = auth_service.list_users(db, page, page_size)
    return {
        "users": [UserOut.model_validate(u) for u in result["users"]],
        "total": result["total"],
        "page": result["page"],
    }


@router.put("/users/{user_id}", response_model=UserOut)
async def admin_update_user(
    user_id: int,
    body: UserUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    store: PermissionOverrideStore = Depends(get_override_store),
    actor: User = Depends(require_users_manage),
):
    """Update a user's role, name, or status."""
    user = auth_service.update_user(
        db, store.catalog, user_id, actor,
        full_name=body.full_name, role=body.role, is_active=body.is_active,
        **client_info(request),
    )
    return UserOut.model_validate(user)
