"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[Dict[str, Any]] = None


# ---- User ----
class UserOut(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None

class MeResponse(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    role_label: str
    panel: str  # "admin" | "staff" | "none"
    permissions: List[str]
    delegation_enabled: bool


# ---- Role permissions ----
class RolePermissionsUpdate(BaseModel):
    permissions: List[str]

class RolePermissionsIndex(BaseModel):
    roles: List[str]
    all_permissions: List[str]
    role_permissions: Dict[str, List[str]]
    default_permissions: Dict[str, List[str]]
    selected_role: Optional[str] = None
    catalog_version: str

class RolePermissionsOut(BaseModel):
    role: str
    permissions: List[str]


# ---- Access matrix ----
class AccessMatrixRow(BaseModel):
    role: str
    role_label: str
    default_permissions: List[str]
    effective_permissions: List[str]
    added_permissions: List[str]
    removed_permissions: List[str]

class AccessMatrixOut(BaseModel):
    all_permissions: List[str]
    matrix: List[AccessMatrixRow]


# ---- Delegation ----
class DelegationOut(BaseModel):
    staff_can_approve: bool
    enabled_by: Optional[int] = None
    enabled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    created_at: Optional[datetime] = None
    actor_id: Optional[int] = None
    actor_name: str
    actor_email: Optional[str] = None
    action: str
    action_label: str
    target_type: str
    module: str
    target_id: Optional[str] = None
    before: Optional[Any] = None
    after: Optional[Any] = None
    ip_address: Optional[str] = None

class AuditLogPage(BaseModel):
    logs: List[AuditLogOut]
    total: int
    page: int
    page_size: int
    available_actions: List[str] = []


# ---- Workflow authorization ----
class ApprovalDecisionOut(BaseModel):
    target_type: str
    target_id: int
    permission: str
    allowed: bool
    delegated: bool = False


class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None
