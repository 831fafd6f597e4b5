"""Auth API router — login and current-user profile."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from civicdesk.db.session import get_db
from civicdesk.schemas.schemas import LoginRequest, TokenResponse, MeResponse
from civicdesk.services.auth_service import auth_service
from civicdesk.services.audit_service import client_info
from civicdesk.services.access_engine import AccessDecisionEngine
from civicdesk.core.security import get_current_user
from civicdesk.core.roles import is_admin_panel_role, is_staff_panel_role, role_label
from civicdesk.core.exceptions import AuthenticationError
from civicdesk.api.deps import get_access_engine
from civicdesk.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Authenticate and return a JWT access token."""
    try:
        return auth_service.authenticate(db, body.email, body.password, **client_info(request))
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.get("/me", response_model=MeResponse)
async def get_me(
    user: User = Depends(get_current_user),
    engine: AccessDecisionEngine = Depends(get_access_engine),
):
    """Current user profile with canonical role and effective permissions."""
    role = engine.role_of(user)
    if is_admin_panel_role(role):
        panel = "admin"
    elif is_staff_panel_role(role):
        panel = "staff"
    else:
        panel = "none"

    return MeResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=role,
        role_label=role_label(role),
        panel=panel,
        permissions=sorted(engine.permissions_for(user)),
        delegation_enabled=engine.delegation.is_enabled(),
    )
